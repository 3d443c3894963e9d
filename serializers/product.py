from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, Optional
from datetime import datetime
from models.product import ProductCategory


class ProductSchema(BaseModel):
    """Schema for returning product data"""
    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "name": "Bug-X",
                "category": "Insecticides",
                "description": "Broad spectrum contact insecticide",
                "image": "/uploads/product-1712345678901-482913734.jpg",
                "created_at": "2024-04-05T10:14:38.901000Z",
                "updated_at": "2024-04-05T10:14:38.901000Z"
            }
        }
    )

    id: int
    name: str
    category: ProductCategory
    description: Optional[str] = None
    image: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ProductStats(BaseModel):
    """Schema for product statistics"""
    total: int = Field(..., ge=0)
    categories: Dict[str, int] = Field(default_factory=dict, description="Product count per category")


class BulkDeleteResult(BaseModel):
    """Schema for the outcome of deleting every product"""
    message: str = "All products deleted successfully"
    deleted_products: int
    deleted_images: int


class ImageUploadAuth(BaseModel):
    """Signed parameters letting a client upload straight to Cloudinary"""
    timestamp: int
    signature: str
    api_key: str
    cloud_name: str
    folder: str
