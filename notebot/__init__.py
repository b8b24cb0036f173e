"""notebot - a chat assistant that keeps your notes."""

__version__ = "0.1.0"
__logo__ = "📝"
