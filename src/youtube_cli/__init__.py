"""Command-line interface for the YouTube Data API v3."""

__version__ = "1.0.0"
