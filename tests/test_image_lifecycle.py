"""Tests for ProductImageCoordinator.

These tests verify:
- A stored image is referenced by the product, and only then
- Nothing is left in the store when a create is rejected or fails
- Replacing an image removes the old one only after the new one is stored
- Deleting a product always removes the record, even if its image cannot be deleted
- Bulk delete honours the production guard
"""

import pytest

from errors import (
    AssetStoreError,
    ForbiddenInEnvironment,
    PayloadTooLarge,
    PersistenceError,
    ProductNotFound,
    UnsupportedMediaType,
    ValidationError,
)
from models.product import ProductCategory


def fail_with_persistence_error(*args, **kwargs):
    raise PersistenceError("Error writing product: disk I/O error")


class TestCreate:

    def test_create_with_image_references_stored_asset(self, coordinator, memory_store, png):
        product = coordinator.create("  Bug-X  ", "Insecticides", "  Kills bugs ", png(b"IMG1"))

        assert product.name == "Bug-X"
        assert product.category == ProductCategory.INSECTICIDES
        assert product.description == "Kills bugs"
        assert memory_store.exists(product.image)
        assert memory_store.assets[product.image] == b"IMG1"

    def test_create_without_image(self, coordinator, memory_store):
        product = coordinator.create("Bug-X", "Insecticides")

        assert product.image is None
        assert product.description is None
        assert memory_store.assets == {}

    @pytest.mark.parametrize("name, category", [
        ("", "Insecticides"),
        ("   ", "Insecticides"),
        ("Bug-X", ""),
        (None, "Insecticides"),
        ("Bug-X", None),
        ("Bug-X", "Herbicides"),
    ])
    def test_invalid_fields_store_nothing(self, coordinator, repository, memory_store, png, name, category):
        with pytest.raises(ValidationError):
            coordinator.create(name, category, image=png())

        assert memory_store.assets == {}
        assert repository.count() == 0

    def test_rejected_image_writes_no_record(self, coordinator, repository, memory_store, png):
        with pytest.raises(UnsupportedMediaType):
            coordinator.create("Bug-X", "Insecticides", image=png(content_type="application/pdf"))

        memory_store.max_bytes = 3
        with pytest.raises(PayloadTooLarge):
            coordinator.create("Bug-X", "Insecticides", image=png(b"IMG12"))

        assert repository.count() == 0

    def test_store_failure_aborts_before_persisting(self, coordinator, repository, memory_store, png):
        memory_store.fail_store = True

        with pytest.raises(AssetStoreError):
            coordinator.create("Bug-X", "Insecticides", image=png())

        assert repository.count() == 0

    def test_persistence_failure_removes_stored_image(self, coordinator, repository, memory_store, png, monkeypatch):
        monkeypatch.setattr(repository, "create", fail_with_persistence_error)

        with pytest.raises(PersistenceError):
            coordinator.create("Bug-X", "Insecticides", image=png())

        assert memory_store.assets == {}
        assert len(memory_store.deleted) == 1

    def test_failed_cleanup_keeps_persistence_error(self, coordinator, repository, memory_store, png, monkeypatch):
        monkeypatch.setattr(repository, "create", fail_with_persistence_error)
        memory_store.fail_delete = True

        with pytest.raises(PersistenceError):
            coordinator.create("Bug-X", "Insecticides", image=png())


class TestUpdate:

    def test_update_without_image_keeps_image(self, coordinator, png):
        product = coordinator.create("Bug-X", "Insecticides", image=png(b"IMG1"))
        image = product.image

        updated = coordinator.update(product.id, name="Bug-X 2", category="Fungicides")

        assert updated.image == image
        assert updated.name == "Bug-X 2"
        assert updated.category == ProductCategory.FUNGICIDES

    def test_description_semantics(self, coordinator):
        product = coordinator.create("Bug-X", "Insecticides", "Original")

        assert coordinator.update(product.id, name="Renamed").description == "Original"
        assert coordinator.update(product.id, description="  New text ").description == "New text"
        assert coordinator.update(product.id, description="").description is None

    def test_blank_name_and_category_are_ignored(self, coordinator):
        product = coordinator.create("Bug-X", "Insecticides")

        updated = coordinator.update(product.id, name="  ", category="")

        assert updated.name == "Bug-X"
        assert updated.category == ProductCategory.INSECTICIDES

    def test_invalid_category_stores_nothing(self, coordinator, memory_store, png):
        product = coordinator.create("Bug-X", "Insecticides")

        with pytest.raises(ValidationError):
            coordinator.update(product.id, category="Herbicides", image=png())

        assert memory_store.assets == {}

    def test_new_image_replaces_old(self, coordinator, memory_store, png):
        product = coordinator.create("Bug-X", "Insecticides", image=png(b"IMG1"))
        old_image = product.image

        updated = coordinator.update(product.id, image=png(b"IMG2"))

        assert updated.image != old_image
        assert not memory_store.exists(old_image)
        assert memory_store.assets[updated.image] == b"IMG2"

    def test_missing_product_stores_nothing(self, coordinator, memory_store, png):
        with pytest.raises(ProductNotFound):
            coordinator.update(404, name="Ghost", image=png())

        assert memory_store.assets == {}

    def test_store_failure_keeps_old_image(self, coordinator, memory_store, png):
        product = coordinator.create("Bug-X", "Insecticides", image=png(b"IMG1"))
        old_image = product.image
        memory_store.fail_store = True

        with pytest.raises(AssetStoreError):
            coordinator.update(product.id, name="Renamed", image=png(b"IMG2"))

        current = coordinator.get(product.id)
        assert current.image == old_image
        assert current.name == "Bug-X"
        assert memory_store.exists(old_image)

    def test_old_image_delete_failure_does_not_block_update(self, coordinator, memory_store, png):
        product = coordinator.create("Bug-X", "Insecticides", image=png(b"IMG1"))
        memory_store.fail_delete = True

        updated = coordinator.update(product.id, image=png(b"IMG2"))

        assert memory_store.assets[updated.image] == b"IMG2"

    def test_persistence_failure_orphans_new_image(self, coordinator, repository, memory_store, png, monkeypatch):
        product = coordinator.create("Bug-X", "Insecticides", image=png(b"IMG1"))
        old_image = product.image
        monkeypatch.setattr(repository, "update", fail_with_persistence_error)

        with pytest.raises(PersistenceError):
            coordinator.update(product.id, image=png(b"IMG2"))

        # Known window: the old image is gone and the new one is left behind
        assert not memory_store.exists(old_image)
        assert list(memory_store.assets.values()) == [b"IMG2"]


class TestDelete:

    def test_delete_removes_record_and_image(self, coordinator, memory_store, png):
        product = coordinator.create("Bug-X", "Insecticides", image=png())
        image = product.image

        coordinator.delete(product.id)

        assert not memory_store.exists(image)
        with pytest.raises(ProductNotFound):
            coordinator.get(product.id)
        with pytest.raises(ProductNotFound):
            coordinator.delete(product.id)

    def test_image_delete_failure_still_removes_record(self, coordinator, memory_store, png):
        product = coordinator.create("Bug-X", "Insecticides", image=png())
        memory_store.fail_delete = True

        coordinator.delete(product.id)

        with pytest.raises(ProductNotFound):
            coordinator.get(product.id)

    def test_record_delete_failure_is_reported(self, coordinator, repository, png, monkeypatch):
        product = coordinator.create("Bug-X", "Insecticides", image=png())
        monkeypatch.setattr(repository, "delete", fail_with_persistence_error)

        with pytest.raises(PersistenceError):
            coordinator.delete(product.id)


class TestDeleteAll:

    def test_deletes_records_and_counts_images(self, coordinator, memory_store, png):
        coordinator.create("A", "Insecticides", image=png())
        coordinator.create("B", "Fungicides", image=png())
        coordinator.create("C", "Weedicides")
        # Image already gone from the store: not counted
        stale = coordinator.create("D", "Weedicides", image=png())
        memory_store.assets.pop(stale.image)

        result = coordinator.delete_all()

        assert result.deleted_products == 4
        assert result.deleted_images == 2
        assert memory_store.assets == {}
        assert coordinator.list() == []

    def test_image_failures_do_not_stop_bulk_delete(self, coordinator, memory_store, png):
        coordinator.create("A", "Insecticides", image=png())
        memory_store.fail_delete = True

        result = coordinator.delete_all()

        assert result.deleted_products == 1
        assert result.deleted_images == 0

    def test_forbidden_in_production(self, coordinator, memory_store, production, png):
        product = coordinator.create("A", "Insecticides", image=png())
        production["on"] = True

        with pytest.raises(ForbiddenInEnvironment):
            coordinator.delete_all()

        assert coordinator.get(product.id).image == product.image
        assert memory_store.exists(product.image)


class TestReads:

    def test_list_filters_and_stats(self, coordinator):
        coordinator.create("Guard", "Insecticides")
        coordinator.create("Guard F", "Fungicides")
        coordinator.create("Mildew Stop", "Fungicides")

        assert [p.name for p in coordinator.list(category=ProductCategory.FUNGICIDES, search=" GUARD ")] == ["Guard F"]

        stats = coordinator.stats()
        assert stats.total == 3
        assert stats.categories == {"Insecticides": 1, "Fungicides": 2}


def test_image_lifecycle_scenario(coordinator, memory_store, png):
    product = coordinator.create("Bug-X", "Insecticides")
    assert not product.image

    first = coordinator.update(product.id, image=png(b"IMG1")).image
    assert memory_store.assets[first] == b"IMG1"

    second = coordinator.update(product.id, image=png(b"IMG2")).image
    assert not memory_store.exists(first)
    assert memory_store.assets[second] == b"IMG2"

    coordinator.delete(product.id)
    with pytest.raises(ProductNotFound):
        coordinator.get(product.id)
    assert not memory_store.exists(second)
