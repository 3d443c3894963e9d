from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from database import get_db
from repositories.products import ProductRepository
from services.image_lifecycle import ProductImageCoordinator
from storage.base import AssetStore
from storage.factory import build_asset_store


@lru_cache
def get_asset_store() -> AssetStore:
    """One store per process, built from IMAGE_STORAGE and its settings."""
    return build_asset_store()


def get_coordinator(
    db: Session = Depends(get_db),
    asset_store: AssetStore = Depends(get_asset_store)
) -> ProductImageCoordinator:
    return ProductImageCoordinator(ProductRepository(db), asset_store)
