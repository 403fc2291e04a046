"""Send one subject and message to many notification services at once."""

__version__ = "0.1.0"