import logging
from typing import Callable, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import environment
from errors import ForbiddenInEnvironment, PersistenceError, ProductNotFound
from models.product import ProductCategory, ProductModel

logger = logging.getLogger(__name__)


class ProductRepository:
    """CRUD, filtering and aggregation over the products table."""

    def __init__(self, db: Session, is_production: Callable[[], bool] = environment.is_production):
        self.db = db
        self.is_production = is_production

    def _commit(self, action: str):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Database error while %s: %s", action, e)
            raise PersistenceError(f"Error {action}: {e}") from e

    def create(self, fields: dict) -> ProductModel:
        product = ProductModel(**fields)
        self.db.add(product)
        self._commit("creating product")
        self.db.refresh(product)
        return product

    def get(self, product_id: int) -> ProductModel:
        product = self.db.query(ProductModel).filter(ProductModel.id == product_id).first()
        if not product:
            raise ProductNotFound(product_id)
        return product

    def list(
        self,
        category: Optional[ProductCategory] = None,
        search: Optional[str] = None
    ) -> List[ProductModel]:
        """Newest first. ``search`` is a case-insensitive substring of the name."""
        query = self.db.query(ProductModel)

        if category:
            query = query.filter(ProductModel.category == ProductCategory(category))
        if search:
            query = query.filter(ProductModel.name.icontains(search, autoescape=True))

        return query.order_by(ProductModel.created_at.desc(), ProductModel.id.desc()).all()

    def all(self) -> List[ProductModel]:
        return self.db.query(ProductModel).all()

    def update(self, product_id: int, fields: dict) -> ProductModel:
        product = self.get(product_id)
        for key, value in fields.items():
            setattr(product, key, value)
        self._commit(f"updating product {product_id}")
        self.db.refresh(product)
        return product

    def delete(self, product_id: int):
        product = self.get(product_id)
        self.db.delete(product)
        self._commit(f"deleting product {product_id}")

    def count(self) -> int:
        return self.db.query(func.count(ProductModel.id)).scalar() or 0

    def count_by_category(self) -> Dict[str, int]:
        rows = self.db.query(ProductModel.category, func.count(ProductModel.id))\
                      .group_by(ProductModel.category)\
                      .all()
        return {ProductCategory(category).value: count for category, count in rows}

    def delete_all(self) -> int:
        if self.is_production():
            raise ForbiddenInEnvironment("This operation is not allowed in production")

        deleted = self.db.query(ProductModel).delete(synchronize_session=False)
        self._commit("deleting all products")
        return deleted
