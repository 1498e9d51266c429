from __future__ import annotations


class SavedItemsError(Exception):
    """Base class for saved-items failures."""


class RemoteUnavailable(SavedItemsError):
    """The saved-set API could not be reached or returned an unusable answer."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class CatalogUnavailable(SavedItemsError):
    """A catalog item could not be resolved this round."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"{key}: {message}")
        self.key = key
