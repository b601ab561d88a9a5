"""Storage layer for recordings."""

from .file_manager import FileManager

__all__ = ["FileManager"]
