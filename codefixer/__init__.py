"""Issue-resolution assistant that proposes fixes for GitHub issues."""

__version__ = "0.1.0"
