from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile, status
from starlette.concurrency import run_in_threadpool
from typing import List, Optional

from dependencies.get_coordinator import get_coordinator
from errors import CatalogError
from models.product import ProductCategory
from serializers.product import BulkDeleteResult, ProductSchema, ProductStats
from services.image_lifecycle import ImageUpload, ProductImageCoordinator

router = APIRouter()


def http_error(error: CatalogError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)


async def read_upload(image: Optional[UploadFile], max_bytes: int) -> Optional[ImageUpload]:
    if image is None or not image.filename:
        return None
    # One byte past the limit is enough to reject it
    data = await image.read(max_bytes + 1)
    return ImageUpload(data=data, filename=image.filename, content_type=image.content_type or "")


# GET all products with optional filtering
@router.get('/products', response_model=List[ProductSchema])
def get_products(
    category: Optional[ProductCategory] = Query(None, description="Filter by category"),
    search: Optional[str] = Query(None, description="Case-insensitive search in name"),
    coordinator: ProductImageCoordinator = Depends(get_coordinator)
):
    """
    Get all products, newest first.

    - **category**: Filter by product category
    - **search**: Search term matched anywhere in the name, ignoring case
    """
    return coordinator.list(category=category, search=search)


# GET product statistics
@router.get('/products/stats', response_model=ProductStats)
def get_product_stats(coordinator: ProductImageCoordinator = Depends(get_coordinator)):
    """
    Total number of products and the count per category.
    Categories without products are left out.
    """
    return coordinator.stats()


# GET single product
@router.get('/products/{product_id}', response_model=ProductSchema)
def get_product(product_id: int, coordinator: ProductImageCoordinator = Depends(get_coordinator)):
    try:
        return coordinator.get(product_id)
    except CatalogError as e:
        raise http_error(e)


# POST create product with optional image
@router.post('/products', response_model=ProductSchema, status_code=status.HTTP_201_CREATED)
async def create_product(
    name: Optional[str] = Form(None, description="Product name"),
    category: Optional[str] = Form(None, description="One of the product categories"),
    description: Optional[str] = Form(None, description="Product description"),
    image: Optional[UploadFile] = File(None, description="Product image (max 5MB)"),
    coordinator: ProductImageCoordinator = Depends(get_coordinator)
):
    """
    Create a new product from a multipart form.

    - **name**: Product name (required)
    - **category**: Insecticides, Fungicides, Weedicides or Plant Growth Regulators (required)
    - **description**: Product description
    - **image**: Image file, stored in the configured image backend

    The image is only kept if the product is saved.
    """
    upload = await read_upload(image, coordinator.asset_store.max_bytes)
    try:
        return await run_in_threadpool(
            coordinator.create,
            name=name,
            category=category,
            description=description,
            image=upload
        )
    except CatalogError as e:
        raise http_error(e)


# PUT update product
@router.put('/products/{product_id}', response_model=ProductSchema)
async def update_product(
    product_id: int,
    request: Request,
    name: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    coordinator: ProductImageCoordinator = Depends(get_coordinator)
):
    """
    Update a product. Only the fields sent are changed.

    Sending an empty **description** clears it; leaving it out keeps it.
    Uploading a new **image** replaces the old one, which is then deleted.
    """
    # Form(None) turns "" into None, so read description from the raw form
    form = await request.form()
    description = form.get("description")
    if not isinstance(description, str):
        description = None

    upload = await read_upload(image, coordinator.asset_store.max_bytes)
    try:
        return await run_in_threadpool(
            coordinator.update,
            product_id,
            name=name,
            category=category,
            description=description,
            image=upload
        )
    except CatalogError as e:
        raise http_error(e)


# DELETE product and its image
@router.delete('/products/{product_id}')
def delete_product(product_id: int, coordinator: ProductImageCoordinator = Depends(get_coordinator)):
    """
    Delete a product permanently.

    Its image is deleted first; a failure there is logged and does not stop
    the product from being removed.
    """
    try:
        coordinator.delete(product_id)
    except CatalogError as e:
        raise http_error(e)

    return {"message": f"Product with id {product_id} has been permanently deleted"}


# DELETE all products (development only)
@router.delete('/products', response_model=BulkDeleteResult)
def delete_all_products(coordinator: ProductImageCoordinator = Depends(get_coordinator)):
    """
    Delete every product and its image. Refused when APP_ENV is production.
    """
    try:
        return coordinator.delete_all()
    except CatalogError as e:
        raise http_error(e)
