"""Local filesystem storage implementation."""

from __future__ import annotations

import os
from pathlib import Path
from typing import IO

from werkzeug.utils import secure_filename

from .abstract_storage import AbstractStorage

PUBLIC_PREFIX = "/uploads/"


class LocalStorage(AbstractStorage):
    """Persist uploads to a directory on the local filesystem."""

    def __init__(self, upload_dir: str):
        self.base_directory = Path(upload_dir)
        os.makedirs(self.base_directory, exist_ok=True)

    def _path(self, name: str) -> Path:
        safe_name = secure_filename(name)
        if not safe_name:
            raise ValueError("Filename must contain at least one valid character.")
        return self.base_directory / safe_name

    def save(self, file_obj: IO[bytes], filename: str) -> str:
        """Save a file under a sanitized version of ``filename`` and return that name."""

        destination = self._path(filename)
        if hasattr(file_obj, "save"):
            file_obj.save(destination)  # type: ignore[arg-type]
        else:
            with open(destination, "wb") as output:
                output.write(file_obj.read())

        return destination.name

    def exists(self, name: str) -> bool:
        return self._path(name).is_file()

    def delete(self, name: str) -> bool:
        path = self._path(name)
        if not path.is_file():
            return False
        path.unlink()
        return True

    def public_url(self, name: str) -> str:
        return f"{PUBLIC_PREFIX}{name}"

    @staticmethod
    def name_from_url(url: str | None) -> str | None:
        """Return the stored name for a URL produced by ``public_url``, if it is one."""

        if not url or not url.startswith(PUBLIC_PREFIX):
            return None
        return url[len(PUBLIC_PREFIX):] or None
