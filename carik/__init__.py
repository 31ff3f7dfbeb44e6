"""Carik - chat-bot message processing core."""
__version__ = "0.1.0"
