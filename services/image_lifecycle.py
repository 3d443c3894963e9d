"""
Keeps product records and their images consistent.

The database and the image backend cannot share a transaction, so every
operation orders its steps to keep the inconsistency window small:

* create  - store the image, then insert the row; if the insert fails the
            fresh image is deleted again.
* update  - store the new image, delete the old one, then save the row.
            A failed save leaves the new image orphaned (logged, not cleaned).
* delete  - delete the image, then the row. A failed image delete never
            blocks removing the row.

Cleanup steps are best-effort: their failures are logged and the caller
sees the outcome of the primary operation. Nothing is retried.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from config import environment
from errors import (
    AssetStoreError,
    ForbiddenInEnvironment,
    PersistenceError,
    ProductNotFound,
    ValidationError,
)
from models.product import ProductCategory, ProductModel
from repositories.products import ProductRepository
from serializers.product import BulkDeleteResult, ProductStats
from storage.base import AssetRef, AssetStore

logger = logging.getLogger(__name__)


@dataclass
class ImageUpload:
    data: bytes
    filename: str
    content_type: str

    def describe(self) -> str:
        return f"{self.filename or '<unnamed>'} ({self.content_type}, {len(self.data)} bytes)"


def _clean(value: Optional[str]) -> Optional[str]:
    return value.strip() if value is not None else None


def _parse_category(value: str) -> ProductCategory:
    try:
        return ProductCategory(value)
    except ValueError:
        allowed = ", ".join(c.value for c in ProductCategory)
        raise ValidationError(f"Invalid category '{value}'. Allowed: {allowed}")


class ProductImageCoordinator:

    def __init__(
        self,
        repository: ProductRepository,
        asset_store: AssetStore,
        is_production: Callable[[], bool] = environment.is_production
    ):
        self.repository = repository
        self.asset_store = asset_store
        self.is_production = is_production

    def _discard(self, image: Optional[ImageUpload], reason: str):
        if image is not None:
            logger.info("Discarding uploaded image %s: %s", image.describe(), reason)

    def _delete_quietly(self, url: str, context: str) -> bool:
        try:
            return self.asset_store.delete(url)
        except AssetStoreError as e:
            logger.warning("Could not delete image %s (%s): %s", url, context, e)
            return False

    # Reads

    def get(self, product_id: int) -> ProductModel:
        return self.repository.get(product_id)

    def list(self, category: Optional[ProductCategory] = None, search: Optional[str] = None) -> List[ProductModel]:
        return self.repository.list(category=category, search=_clean(search) or None)

    def stats(self) -> ProductStats:
        return ProductStats(
            total=self.repository.count(),
            categories=self.repository.count_by_category()
        )

    # Writes

    def create(
        self,
        name: Optional[str],
        category: Optional[str],
        description: Optional[str] = None,
        image: Optional[ImageUpload] = None
    ) -> ProductModel:
        name = _clean(name)
        category = _clean(category)
        if not name or not category:
            self._discard(image, "name and category are required")
            raise ValidationError("Name and category are required")
        try:
            parsed_category = _parse_category(category)
        except ValidationError:
            self._discard(image, "invalid category")
            raise

        stored: Optional[AssetRef] = None
        if image is not None:
            stored = self.asset_store.store(image.data, image.filename, image.content_type)

        fields = {
            "name": name,
            "category": parsed_category,
            "description": _clean(description) or None,
            "image": stored.url if stored else None,
        }

        try:
            product = self.repository.create(fields)
        except PersistenceError:
            if stored is not None:
                self._delete_quietly(stored.url, "rolling back failed create")
            raise

        logger.info("Product created: %s", product)
        return product

    def update(
        self,
        product_id: int,
        name: Optional[str] = None,
        category: Optional[str] = None,
        description: Optional[str] = None,
        image: Optional[ImageUpload] = None
    ) -> ProductModel:
        """
        Partial update. ``None`` leaves a field alone; ``description=""``
        clears the description. The image only changes when a new one is
        uploaded.
        """
        try:
            existing = self.repository.get(product_id)
        except ProductNotFound:
            self._discard(image, f"product {product_id} could not be loaded")
            raise

        fields: Dict[str, object] = {}
        # Blank name or category means "not provided", as with absent fields
        if _clean(name):
            fields["name"] = _clean(name)
        if _clean(category):
            try:
                fields["category"] = _parse_category(_clean(category))
            except ValidationError:
                self._discard(image, "invalid category")
                raise
        if description is not None:
            fields["description"] = description.strip() or None

        old_image = existing.image
        stored: Optional[AssetRef] = None
        if image is not None:
            stored = self.asset_store.store(image.data, image.filename, image.content_type)
            # New image is durable; only now let go of the old one
            if old_image:
                self._delete_quietly(old_image, f"replacing image of product {product_id}")
            fields["image"] = stored.url

        try:
            product = self.repository.update(product_id, fields)
        except PersistenceError:
            if stored is not None:
                logger.warning(
                    "Update of product %s failed after storing %s; image is orphaned%s",
                    product_id,
                    stored.url,
                    f" and previous image {old_image} was already deleted" if old_image else ""
                )
            raise

        logger.info("Product updated: %s", product)
        return product

    def delete(self, product_id: int):
        image = self.repository.get(product_id).image

        if image:
            self._delete_quietly(image, f"deleting product {product_id}")

        try:
            self.repository.delete(product_id)
        except PersistenceError:
            if image:
                logger.error(
                    "Product %s still references %s after its image was deleted",
                    product_id,
                    image
                )
            raise

        logger.info("Product deleted: %s", product_id)

    def delete_all(self) -> BulkDeleteResult:
        if self.is_production():
            raise ForbiddenInEnvironment("This operation is not allowed in production")

        deleted_images = 0
        for product in self.repository.all():
            if product.image and self._delete_quietly(product.image, "bulk delete"):
                deleted_images += 1

        deleted_products = self.repository.delete_all()
        logger.info("Deleted %d products and %d images", deleted_products, deleted_images)

        return BulkDeleteResult(
            deleted_products=deleted_products,
            deleted_images=deleted_images
        )
