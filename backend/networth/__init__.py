"""Net-worth performance analytics and retirement simulation engine."""

__version__ = "0.1.0"
