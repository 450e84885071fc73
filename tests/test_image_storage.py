"""Filesystem image storage: allow-lists, UUID naming, idempotent delete"""
import os

import pytest

from beyou.core.exceptions import ImageStorageError, InvalidInputError
from beyou.services import ImageStorageService, image_storage


def test_save_writes_uuid_named_file_under_category():
    stored = image_storage.save(b"\x89PNG fake", "Summer Sale.PNG", "banners")

    assert stored.path == f"/uploads/banners/{stored.filename}"
    assert stored.filename.endswith(".png")
    assert stored.filename != "Summer Sale.PNG"
    assert image_storage.read(stored.path) == b"\x89PNG fake"


def test_two_saves_of_same_name_never_collide():
    first = image_storage.save(b"one", "photo.jpg", "products")
    second = image_storage.save(b"two", "photo.jpg", "products")

    assert first.path != second.path
    assert image_storage.read(first.path) == b"one"
    assert image_storage.read(second.path) == b"two"


@pytest.mark.parametrize("filename", ["payload.exe", "no-extension", "", "image.jpg.sh"])
def test_save_rejects_disallowed_extensions(filename):
    with pytest.raises(InvalidInputError):
        image_storage.save(b"data", filename, "banners")
    assert list((image_storage.root / "banners").iterdir()) == []


def test_save_rejects_unknown_category():
    with pytest.raises(InvalidInputError):
        image_storage.save(b"data", "ok.jpg", "secrets")


def test_delete_is_idempotent():
    stored = image_storage.save(b"bytes", "a.webp", "categories")

    assert image_storage.delete(stored.path) is True
    assert image_storage.delete(stored.path) is False
    assert not image_storage.exists(stored.path)


def test_delete_surfaces_genuine_io_errors(monkeypatch):
    stored = image_storage.save(b"bytes", "a.gif", "profiles")

    def refuse(path):
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr(os, "remove", refuse)

    with pytest.raises(ImageStorageError):
        image_storage.delete(stored.path)
    assert image_storage.release(stored.path) == stored.path


def test_release_of_missing_file_is_not_an_orphan():
    assert image_storage.release("/uploads/banners/gone.jpg") is None
    assert image_storage.release(None) is None


@pytest.mark.parametrize("path", ["/uploads/../../etc/passwd", "../outside.jpg", "/uploads/"])
def test_resolve_refuses_paths_outside_root(path):
    with pytest.raises(InvalidInputError):
        image_storage.resolve(path)


def test_ensure_directories_creates_every_category(tmp_path):
    storage = ImageStorageService(str(tmp_path / "store"))
    storage.ensure_directories()

    assert sorted(p.name for p in (tmp_path / "store").iterdir()) == sorted(storage.VALID_CATEGORIES)
