"""Domain interfaces and abstract base classes."""

from .backend_interface import ICompletionBackend

__all__ = ["ICompletionBackend"]
