from fastapi import APIRouter, Depends, HTTPException, status

from dependencies.get_coordinator import get_asset_store
from serializers.product import ImageUploadAuth
from storage.base import AssetStore
from storage.cloudinary_store import CloudinaryAssetStore

router = APIRouter()


@router.get('/images/auth', response_model=ImageUploadAuth)
def get_image_upload_auth(asset_store: AssetStore = Depends(get_asset_store)):
    """
    Signed parameters for uploading an image straight to Cloudinary.
    Only available when IMAGE_STORAGE=cloudinary.
    """
    if not isinstance(asset_store, CloudinaryAssetStore):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Direct image uploads are not enabled"
        )
    return asset_store.signed_upload_params()
