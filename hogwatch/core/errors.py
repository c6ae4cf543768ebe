from typing import Optional


class HogwatchError(Exception):
    """Base exception for hogwatch."""
    pass


class DecodeError(HogwatchError):
    """Raised when a capture payload cannot be decompressed or parsed."""
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class PersistenceError(HogwatchError):
    """Raised when the durable backing cannot serve a request."""
    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class PersistenceReadError(PersistenceError):
    """Raised when a stored value cannot be read back."""
    pass


class PersistenceWriteError(PersistenceError):
    """Raised when the backing rejects a write, e.g. for exceeding its quota."""
    def __init__(self, message: str, key: Optional[str] = None, size: Optional[int] = None):
        super().__init__(message, key)
        self.size = size
