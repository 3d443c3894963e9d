import os
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

db_URI = os.getenv('DATABASE_URL', 'sqlite:///./fieldlife.db')

log_level = os.getenv('LOG_LEVEL', 'INFO').upper()

# "local" or "cloudinary"
image_storage = os.getenv('IMAGE_STORAGE', 'local').strip().lower()

static_prefix = '/uploads'
upload_dir = os.getenv('UPLOAD_DIR', 'uploads')

# 5MB limit
max_upload_bytes = int(os.getenv('MAX_UPLOAD_BYTES', 5 * 1024 * 1024))


def frontend_origins() -> List[str]:
    raw = os.getenv('FRONTEND_ORIGINS', '')
    return [origin.strip() for origin in raw.split(',') if origin.strip()]


def is_production() -> bool:
    """Re-reads APP_ENV on every call."""
    return os.getenv('APP_ENV', 'development').strip().lower() == 'production'


@dataclass(frozen=True)
class LocalStorageSettings:
    """Where uploaded images are written and how they are addressed."""
    directory: str
    static_prefix: str = '/uploads'
    max_bytes: int = 5 * 1024 * 1024


@dataclass(frozen=True)
class CloudinarySettings:
    """Credentials and upload options for the Cloudinary backend."""
    cloud_name: str
    api_key: str
    api_secret: str
    folder: str = 'fieldlife/products'
    timeout: float = 5.0
    max_bytes: int = 5 * 1024 * 1024


def local_storage_settings() -> LocalStorageSettings:
    return LocalStorageSettings(
        directory=upload_dir,
        static_prefix=static_prefix,
        max_bytes=max_upload_bytes
    )


def _required(key: str) -> str:
    value: Optional[str] = os.getenv(key)
    if not value:
        raise ValueError(f"{key} must be set when IMAGE_STORAGE=cloudinary")
    return value


def cloudinary_settings() -> CloudinarySettings:
    return CloudinarySettings(
        cloud_name=_required('CLOUDINARY_CLOUD_NAME'),
        api_key=_required('CLOUDINARY_API_KEY'),
        api_secret=_required('CLOUDINARY_API_SECRET'),
        folder=os.getenv('CLOUDINARY_FOLDER', 'fieldlife/products'),
        timeout=float(os.getenv('CLOUDINARY_TIMEOUT', 5)),
        max_bytes=max_upload_bytes
    )
