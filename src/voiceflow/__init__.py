"""VoiceFlow: voice-driven task tracker core."""

__version__ = "0.1.0"
