"""Backend implementations."""

from seal_link.backends.seal import SealBackend

__all__ = ["SealBackend"]
