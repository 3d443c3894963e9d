"""
Error kinds raised by the catalog core.

Each kind carries the HTTP status the controllers answer with, so the
mapping lives next to the error instead of in every route.
"""


class CatalogError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CatalogError):
    """Missing or invalid input fields, or a rejected upload."""
    status_code = 400


class UnsupportedMediaType(ValidationError):
    status_code = 415


class PayloadTooLarge(ValidationError):
    status_code = 413


class ProductNotFound(CatalogError):
    status_code = 404

    def __init__(self, product_id):
        super().__init__(f"Product with id {product_id} not found")
        self.product_id = product_id


class AssetStoreError(CatalogError):
    """The image backend failed to store or delete an asset."""
    status_code = 502


class AssetRejected(AssetStoreError):
    """The backend refused the asset itself; sending it again will not help."""
    status_code = 422


class AssetBackendUnavailable(AssetStoreError):
    """Network, auth, rate-limit or timeout failure talking to the backend."""
    status_code = 503


class PersistenceError(CatalogError):
    """A database write failed."""
    status_code = 500


class ForbiddenInEnvironment(CatalogError):
    status_code = 403
