"""Word of the Day chat companion."""

__version__ = "1.0.0"
