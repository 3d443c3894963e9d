from sqlalchemy import Column, Integer, String, Enum
from models.base import BaseModel
import enum


class ProductCategory(str, enum.Enum):
    INSECTICIDES = "Insecticides"
    FUNGICIDES = "Fungicides"
    WEEDICIDES = "Weedicides"
    PLANT_GROWTH_REGULATORS = "Plant Growth Regulators"


class ProductModel(BaseModel):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    category = Column(
        Enum(
            ProductCategory,
            name="product_category",
            native_enum=False,
            length=50,
            values_callable=lambda categories: [c.value for c in categories]
        ),
        nullable=False,
        index=True
    )
    description = Column(String(2000), nullable=True)
    # Local "/uploads/<name>" path or remote URL
    image = Column(String(500), nullable=True)

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', category='{self.category}')>"
