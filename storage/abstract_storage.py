"""Storage abstraction layer for user uploads."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import IO


class AbstractStorage(ABC):
    """Interface for upload storage backends."""

    @abstractmethod
    def save(self, file_obj: IO[bytes], filename: str) -> str:
        """Persist a file and return its stored name."""

    @abstractmethod
    def exists(self, name: str) -> bool:
        """Return whether a stored file with this name exists."""

    @abstractmethod
    def delete(self, name: str) -> bool:
        """Remove a stored file, returning False when there was nothing to remove."""

    @abstractmethod
    def public_url(self, name: str) -> str:
        """Return the URL path under which the stored file is served."""
