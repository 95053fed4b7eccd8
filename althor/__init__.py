"""
Althor - AI content writing assistant.

A Python application that generates written content with hosted LLM
providers, keeps an editable conversation transcript, and accepts
spoken requests through a transcribe-then-extract voice pipeline.
"""

__version__ = "0.1.0"
__description__ = "AI content writing assistant with voice commands"
