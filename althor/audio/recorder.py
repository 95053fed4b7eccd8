"""
Audio recording functionality using PyAudio.

Handles audio capture from the default microphone and hands back one WAV
clip per recording for hosted transcription.
"""

import asyncio
import functools
import io
import logging
import wave
from typing import List, Optional

try:
    import pyaudio
    PYAUDIO_AVAILABLE = True
except ImportError:
    PYAUDIO_AVAILABLE = False
    pyaudio = None

from ..errors import AlthorError, DeviceUnavailableError

logger = logging.getLogger(__name__)


class AudioRecorderError(AlthorError):
    """Raised when an open recording cannot be read or finalized."""
    pass


class MicrophonePermissionError(DeviceUnavailableError):
    """Raised when microphone permissions are not granted."""
    pass


class NoInputDeviceError(DeviceUnavailableError):
    """Raised when no audio input devices are available."""
    pass


class AudioRecorder:
    """
    Async audio recorder that captures from the microphone and returns WAV bytes.

    The recorder exclusively owns the microphone from ``start_recording``
    until the device is released. Release happens on every exit from the
    recording state: a normal stop, a failed stop, or ``release()``.

    Args:
        sample_rate: Audio sample rate in Hz (16kHz is plenty for speech)
        chunk_size: Size of audio chunks to read (512 for latency/CPU balance)
        channels: Number of audio channels (1 for mono)

    Example:
        >>> recorder = AudioRecorder()
        >>> await recorder.start_recording()
        >>> # ... user speaks ...
        >>> clip = await recorder.stop_recording()
        >>> clip[:4]
        b'RIFF'
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        chunk_size: int = 512,
        channels: int = 1
    ):
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.sample_width = 2  # 16-bit = 2 bytes per sample

        # Internal state
        self._audio = None
        self._stream = None
        self._is_recording = False
        self._audio_buffer: List[bytes] = []
        self._recording_task: Optional[asyncio.Task] = None

        self._validate_config()

    def _validate_config(self) -> None:
        """Validate audio configuration parameters."""
        if self.sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {self.sample_rate}")
        if self.chunk_size <= 0:
            raise ValueError(f"Chunk size must be positive, got {self.chunk_size}")
        if self.channels not in (1, 2):
            raise ValueError(f"Channels must be 1 or 2, got {self.channels}")

    async def start_recording(self) -> None:
        """
        Acquire the microphone and begin buffering audio chunks.

        Raises:
            RuntimeError: If already recording
            MicrophonePermissionError: If microphone access is denied
            NoInputDeviceError: If no input devices are available
            DeviceUnavailableError: If the device cannot be opened for any other reason
        """
        if self._is_recording:
            raise RuntimeError("Recording already in progress")
        if not PYAUDIO_AVAILABLE:
            raise DeviceUnavailableError("Audio capture needs PyAudio. Install with: pip install 'althor[audio]'")

        try:
            self._audio = pyaudio.PyAudio()

            if not self._has_input_devices():
                raise NoInputDeviceError("No audio input devices found")

            self._audio_buffer.clear()

            try:
                self._stream = self._audio.open(
                    format=pyaudio.paInt16,
                    channels=self.channels,
                    rate=self.sample_rate,
                    input=True,
                    frames_per_buffer=self.chunk_size,
                )
            except OSError as e:
                if "device" in str(e).lower() or "input" in str(e).lower():
                    raise MicrophonePermissionError(self._format_permission_error()) from e
                raise DeviceUnavailableError(f"Failed to open audio stream: {e}") from e

            self._is_recording = True
            self._recording_task = asyncio.create_task(self._record_audio_loop())
            logger.info(f"Recording started: {self.sample_rate}Hz, {self.channels} channel(s)")

        except Exception as e:
            # Never keep a half-acquired device
            self._cleanup_resources()
            if isinstance(e, DeviceUnavailableError):
                raise
            raise DeviceUnavailableError(f"Failed to start recording: {e}") from e

    async def stop_recording(self) -> bytes:
        """
        Stop recording, release the device and return the clip.

        All buffered chunks are concatenated into a single WAV file.

        Raises:
            RuntimeError: If not currently recording
            AudioRecorderError: If the recording cannot be finalized
        """
        if not self._is_recording:
            raise RuntimeError("Not currently recording")

        try:
            self._is_recording = False
            if self._recording_task:
                await self._recording_task
                self._recording_task = None

            self._cleanup_resources()
            wav_data = self._create_wav_data()
            logger.info(f"Recording stopped: {len(wav_data)} bytes captured")
            return wav_data

        except Exception as e:
            self._cleanup_resources()
            raise AudioRecorderError(f"Failed to stop recording: {e}") from e

    async def release(self) -> None:
        """Abort any recording in progress and free the device."""
        self._is_recording = False
        if self._recording_task:
            # Let the in-flight read return before the stream is closed
            try:
                await self._recording_task
            except Exception as e:
                logger.warning(f"Recording loop ended with error: {e}")
            self._recording_task = None
        self._cleanup_resources()
        self._audio_buffer.clear()

    def is_recording(self) -> bool:
        """Check if currently recording."""
        return self._is_recording

    async def _record_audio_loop(self) -> None:
        """Read chunks into the buffer until recording stops."""
        if not self._stream:
            return

        loop = asyncio.get_running_loop()
        read_chunk = functools.partial(
            self._stream.read,
            self.chunk_size,
            exception_on_overflow=False  # Prevent crashes on buffer overrun
        )
        try:
            while self._is_recording:
                try:
                    data = await loop.run_in_executor(None, read_chunk)
                    if data:
                        self._audio_buffer.append(data)
                except OSError as e:
                    logger.warning(f"Audio read error: {e}")
                    if "input overflowed" not in str(e).lower():
                        break
                    await asyncio.sleep(0.01)  # Brief pause on overflow
        finally:
            logger.debug("Recording loop ended")

    def _create_wav_data(self) -> bytes:
        """Combine all buffered chunks into one WAV file."""
        wav_buffer = io.BytesIO()
        with wave.open(wav_buffer, 'wb') as wav_file:
            wav_file.setnchannels(self.channels)
            wav_file.setsampwidth(self.sample_width)
            wav_file.setframerate(self.sample_rate)
            wav_file.writeframes(b''.join(self._audio_buffer))
        self._audio_buffer.clear()
        return wav_buffer.getvalue()

    def _has_input_devices(self) -> bool:
        """Check if any audio input devices are available."""
        if not self._audio:
            return False

        try:
            for i in range(self._audio.get_device_count()):
                device_info = self._audio.get_device_info_by_index(i)
                if device_info.get('maxInputChannels', 0) > 0:
                    return True
        except OSError as e:
            logger.warning(f"Error checking input devices: {e}")

        return False

    def _format_permission_error(self) -> str:
        """Format a helpful permission error message."""
        return (
            "Microphone access denied. On macOS:\n"
            "1. Open System Settings → Privacy & Security → Microphone\n"
            "2. Enable microphone access for your terminal application\n"
            "3. Restart the application and try again"
        )

    def _cleanup_resources(self) -> None:
        """Stop the stream and terminate PyAudio, releasing the microphone."""
        try:
            if self._stream:
                if self._stream.is_active():
                    self._stream.stop_stream()
                self._stream.close()
        except OSError as e:
            logger.warning(f"Error closing audio stream: {e}")
        finally:
            self._stream = None

        if self._audio:
            self._audio.terminate()
            self._audio = None

    async def __aenter__(self) -> "AudioRecorder":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit; the device is always released."""
        await self.release()
