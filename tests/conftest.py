import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config.environment import LocalStorageSettings
from errors import AssetStoreError
from models.base import Base
from repositories.products import ProductRepository
from services.image_lifecycle import ImageUpload, ProductImageCoordinator
from storage.base import AssetRef, AssetStore, generate_asset_name
from storage.local import LocalAssetStore


class MemoryAssetStore(AssetStore):
    """Asset store kept in a dict, with switches to make calls fail."""

    name = "memory"

    def __init__(self, max_bytes: int = 5 * 1024 * 1024):
        super().__init__(max_bytes)
        self.assets = {}
        self.fail_store = False
        self.fail_delete = False
        self.deleted = []

    def _put(self, data, filename, content_type):
        if self.fail_store:
            raise AssetStoreError("store unavailable")
        key = generate_asset_name()
        url = f"memory://{key}"
        self.assets[url] = data
        return AssetRef(url=url, key=key)

    def delete(self, url):
        if self.fail_delete:
            raise AssetStoreError("delete unavailable")
        self.deleted.append(url)
        return self.assets.pop(url, None) is not None

    def exists(self, url):
        return url in self.assets


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def production():
    """Flip ``production["on"]`` to make the environment look like production."""
    return {"on": False}


@pytest.fixture
def repository(db_session, production):
    return ProductRepository(db_session, is_production=lambda: production["on"])


@pytest.fixture
def memory_store():
    return MemoryAssetStore()


@pytest.fixture
def coordinator(repository, memory_store, production):
    return ProductImageCoordinator(repository, memory_store, is_production=lambda: production["on"])


@pytest.fixture
def png():
    def make(data=b"\x89PNG fake image bytes", filename="leaf.png", content_type="image/png"):
        return ImageUpload(data=data, filename=filename, content_type=content_type)
    return make


@pytest.fixture
def local_store(tmp_path):
    return LocalAssetStore(LocalStorageSettings(directory=str(tmp_path / "uploads")))


@pytest.fixture
def client(engine, local_store, monkeypatch):
    from database import get_db
    from dependencies.get_coordinator import get_asset_store
    from main import app

    monkeypatch.delenv("APP_ENV", raising=False)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = Session()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_asset_store] = lambda: local_store
    yield TestClient(app)
    app.dependency_overrides.clear()
