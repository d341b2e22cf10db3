from __future__ import annotations


class CmdmemError(Exception):
    """Base class for errors raised by cmdmem."""


class StorageFailure(CmdmemError):
    """The SQLite store could not be opened, read, or written."""


class InvalidSnapshot(CmdmemError):
    """An import file is malformed or carries no version tag."""


class PatternFailure(CmdmemError):
    """A configured redaction pattern does not compile."""


class NotFound(CmdmemError):
    """A command record id no longer exists."""
