"""Source-control operations on disposable working copies."""

from .workspace import GitWorkspace

__all__ = ["GitWorkspace"]
