from config import environment
from storage.base import AssetStore


def build_asset_store(backend: str = None) -> AssetStore:
    backend = (backend or environment.image_storage).lower()

    if backend == "local":
        from storage.local import LocalAssetStore
        return LocalAssetStore(environment.local_storage_settings())

    if backend == "cloudinary":
        from storage.cloudinary_store import CloudinaryAssetStore
        return CloudinaryAssetStore(environment.cloudinary_settings())

    raise ValueError(f"Unknown IMAGE_STORAGE backend: {backend!r} (expected 'local' or 'cloudinary')")
