"""movsim exception hierarchy."""


class MovSimError(Exception):
    """Base class for all movsim errors."""
    pass


class InvalidAddress(MovSimError, IndexError):
    """Raised when an address outside 00-99 is read, written or toggled."""

    def __init__(self, addr):
        self.addr = addr
        super().__init__(f"Address out of range: {addr!r} (expected 0-99)")


class InvalidValue(MovSimError, ValueError):
    """Raised when a cell value or a memory image is out of range."""
    pass


class StorageError(MovSimError):
    """Raised by storage adapters (bad program name, corrupt image)."""
    pass
