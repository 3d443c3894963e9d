import logging
import os
import re
import time
from typing import Optional
from urllib.parse import urlparse

import cloudinary.api
import cloudinary.exceptions
import cloudinary.uploader
import cloudinary.utils

from config.environment import CloudinarySettings
from errors import AssetBackendUnavailable, AssetRejected, AssetStoreError
from storage.base import AssetRef, AssetStore, generate_asset_name

logger = logging.getLogger(__name__)

_VERSION_SEGMENT = re.compile(r"^v\d+$")

# Cloudinary refused the request itself; everything else is auth, rate limit or transport
_REJECTIONS = (
    cloudinary.exceptions.BadRequest,
    cloudinary.exceptions.NotAllowed,
    cloudinary.exceptions.AlreadyExists,
)


def public_id_from_url(url: str) -> Optional[str]:
    """
    Recover the public_id from a delivery URL such as
    ``https://res.cloudinary.com/<cloud>/image/upload/v1712345/fieldlife/products/product-1-2.jpg``.
    Returns None for URLs that are not Cloudinary upload URLs.
    """
    path = urlparse(url).path
    marker = "/upload/"
    if marker not in path:
        return None

    segments = path.split(marker, 1)[1].split("/")
    for index, segment in enumerate(segments):
        if _VERSION_SEGMENT.match(segment):
            segments = segments[index + 1:]
            break

    public_id = os.path.splitext("/".join(segments))[0]
    return public_id or None


class CloudinaryAssetStore(AssetStore):
    """Images on Cloudinary. Credentials travel with each call, never via global config."""

    name = "cloudinary"

    def __init__(self, settings: CloudinarySettings):
        super().__init__(settings.max_bytes)
        self.settings = settings

    def _options(self, **extra):
        options = {
            "cloud_name": self.settings.cloud_name,
            "api_key": self.settings.api_key,
            "api_secret": self.settings.api_secret,
            "timeout": self.settings.timeout,
            "resource_type": "image",
        }
        options.update(extra)
        return options

    def _translate(self, action: str, error: Exception) -> AssetStoreError:
        if isinstance(error, _REJECTIONS):
            return AssetRejected(f"Cloudinary rejected {action}: {error}")
        return AssetBackendUnavailable(f"Cloudinary {action} failed: {error}")

    def _put(self, data: bytes, filename: str, content_type: str) -> AssetRef:
        try:
            result = cloudinary.uploader.upload(
                data,
                **self._options(
                    public_id=generate_asset_name(),
                    folder=self.settings.folder,
                    overwrite=False
                )
            )
        except cloudinary.exceptions.Error as e:
            raise self._translate("upload", e) from e

        url = result.get("secure_url")
        if not url:
            raise AssetBackendUnavailable("Cloudinary upload returned no secure_url")

        logger.info("Uploaded image %s to Cloudinary", result.get("public_id"))
        return AssetRef(url=url, key=result.get("public_id"))

    def delete(self, url: str) -> bool:
        public_id = public_id_from_url(url)
        if public_id is None:
            logger.warning("Not a Cloudinary image URL, nothing to delete: %s", url)
            return False

        try:
            result = cloudinary.uploader.destroy(public_id, **self._options(invalidate=True))
        except cloudinary.exceptions.Error as e:
            raise self._translate("delete", e) from e

        outcome = result.get("result")
        if outcome == "ok":
            logger.info("Deleted Cloudinary image %s", public_id)
            return True
        if outcome == "not found":
            logger.info("Cloudinary image %s already gone, nothing to delete", public_id)
            return False
        raise AssetBackendUnavailable(f"Unexpected Cloudinary delete result for {public_id}: {outcome}")

    def exists(self, url: str) -> bool:
        public_id = public_id_from_url(url)
        if public_id is None:
            return False
        try:
            cloudinary.api.resource(public_id, **self._options())
        except cloudinary.exceptions.NotFound:
            return False
        except cloudinary.exceptions.Error as e:
            raise self._translate("lookup", e) from e
        return True

    def signed_upload_params(self) -> dict:
        """Parameters a browser needs to upload straight into our folder."""
        timestamp = int(time.time())
        signature = cloudinary.utils.api_sign_request(
            {"timestamp": timestamp, "folder": self.settings.folder},
            self.settings.api_secret
        )
        return {
            "timestamp": timestamp,
            "signature": signature,
            "api_key": self.settings.api_key,
            "cloud_name": self.settings.cloud_name,
            "folder": self.settings.folder,
        }
