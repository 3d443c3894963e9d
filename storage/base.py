"""
Asset store contract shared by the local-disk and Cloudinary backends.

``store`` runs the upload rules (image mimetype, size limit) once for every
backend, then hands the bytes to ``_put``. References handed out by ``store``
are what gets persisted on a product's ``image`` column, so ``delete`` and
``exists`` take that same string back.
"""

import random
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

from errors import PayloadTooLarge, UnsupportedMediaType


@dataclass(frozen=True)
class AssetRef:
    url: str
    # file name on disk, or Cloudinary public_id
    key: str


def generate_asset_name(prefix: str = "product") -> str:
    """``product-<epoch ms>-<0..1e9>``; unique enough for concurrent writers."""
    unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    return f"{prefix}-{unique_suffix}"


class AssetStore(ABC):
    name = "abstract"

    def __init__(self, max_bytes: int):
        self.max_bytes = max_bytes

    def validate(self, data: bytes, content_type: str) -> None:
        if not content_type or not content_type.startswith("image/"):
            raise UnsupportedMediaType("Only image files are allowed")
        if len(data) > self.max_bytes:
            raise PayloadTooLarge(
                f"Image is {len(data)} bytes, the limit is {self.max_bytes} bytes"
            )

    def store(self, data: bytes, filename: str, content_type: str) -> AssetRef:
        self.validate(data, content_type)
        return self._put(data, filename or "", content_type)

    @abstractmethod
    def _put(self, data: bytes, filename: str, content_type: str) -> AssetRef:
        ...

    @abstractmethod
    def delete(self, url: str) -> bool:
        """Remove the asset. Returns False when there was nothing to remove."""

    @abstractmethod
    def exists(self, url: str) -> bool:
        ...
