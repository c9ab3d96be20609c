"""Local-disk blob backend, the default for development."""
from __future__ import annotations

import os
from pathlib import Path


class LocalBlobStore:
    """Stores blobs as flat files under one directory.

    Exposes the same methods as GCSService so DocumentStore can use either.
    """

    def __init__(self, root: str | os.PathLike) -> None:
        self.root = Path(root)

    def _path(self, name: str) -> Path:
        path = (self.root / name).resolve()
        if path.parent != self.root.resolve():
            raise ValueError(f"Invalid blob name: {name!r}")
        return path

    def upload_bytes(self, name: str, data: bytes, content_type: str) -> str:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self._path(name)
        # "xb" refuses to overwrite an existing blob
        with open(path, "xb") as fh:
            fh.write(data)
        return str(path)

    def delete_blob(self, name: str) -> None:
        self._path(name).unlink(missing_ok=True)

    def blob_exists(self, name: str) -> bool:
        return self._path(name).exists()
