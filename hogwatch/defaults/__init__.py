"""Default constants and configuration values for hogwatch."""

from .config import DEFAULT_BUFFER_CONFIG, MAX_SIZE_BYTES, STORAGE_KEY, BufferConfig

__all__ = ["DEFAULT_BUFFER_CONFIG", "MAX_SIZE_BYTES", "STORAGE_KEY", "BufferConfig"]
