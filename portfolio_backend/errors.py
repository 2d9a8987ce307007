from __future__ import annotations


class PortfolioError(Exception):
    """Base class for errors raised by the persistence layer."""


class NotFoundError(PortfolioError):
    pass


class InvalidKeyError(PortfolioError, ValueError):
    pass


class ConflictError(PortfolioError):
    """The document on disk was written by someone else since we last read it."""


class StorageError(PortfolioError):
    """A file could not be read, written or listed."""
