import logging
import os
from pathlib import Path

from config.environment import LocalStorageSettings
from errors import AssetStoreError
from storage.base import AssetRef, AssetStore, generate_asset_name

logger = logging.getLogger(__name__)


class LocalAssetStore(AssetStore):
    """Images on the server's disk, served back under the static prefix."""

    name = "local"

    def __init__(self, settings: LocalStorageSettings):
        super().__init__(settings.max_bytes)
        self.directory = Path(settings.directory)
        self.static_prefix = "/" + settings.static_prefix.strip("/")

    def _path_for(self, url: str) -> Path:
        # Only the basename is trusted; the reference never escapes the directory
        return self.directory / Path(url).name

    def _put(self, data: bytes, filename: str, content_type: str) -> AssetRef:
        extension = os.path.splitext(filename)[1].lower()
        asset_name = f"{generate_asset_name()}{extension}"
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            (self.directory / asset_name).write_bytes(data)
        except OSError as e:
            raise AssetStoreError(f"Failed to write image {asset_name}: {e}") from e

        logger.info("Stored image %s (%d bytes)", asset_name, len(data))
        return AssetRef(url=f"{self.static_prefix}/{asset_name}", key=asset_name)

    def delete(self, url: str) -> bool:
        path = self._path_for(url)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.info("Image %s already gone, nothing to delete", url)
            return False
        except OSError as e:
            raise AssetStoreError(f"Failed to delete image {url}: {e}") from e

        logger.info("Deleted image %s", path)
        return True

    def exists(self, url: str) -> bool:
        return self._path_for(url).is_file()

    def read(self, url: str) -> bytes:
        return self._path_for(url).read_bytes()
