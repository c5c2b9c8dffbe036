import io

import pytest
from fastapi import UploadFile

from src.photoshare.storage import PhotoStorage, extension_allowed, upload_size


@pytest.fixture
def area(tmp_path):
    return PhotoStorage(str(tmp_path / "files"))


def test_unique_filename_layout(area):
    name = area.unique_filename(3, "../../etc/cat.jpg")
    prefix, owner, stamp, rest = name.split("_", 3)
    assert (prefix, owner, rest) == ("photos", "3", "cat.jpg")
    assert stamp.isdigit()


def test_public_url_round_trip(area):
    url = area.public_url("photos_1_5_my cat.jpg", "http://testserver/")
    assert url == "http://testserver/public/photos_1_5_my%20cat.jpg"
    assert PhotoStorage.filename_from_url(url) == "photos_1_5_my cat.jpg"


def test_configured_base_url_wins(tmp_path):
    area = PhotoStorage(str(tmp_path), public_base_url="https://cdn.example.org/")
    assert area.public_url("a.jpg", "http://testserver/") == "https://cdn.example.org/public/a.jpg"


def test_save_and_delete(area):
    upload = UploadFile(file=io.BytesIO(b"abc"), filename="a.jpg")
    assert upload_size(upload) == 3
    assert area.save_upload(upload, "photos_1_1_a.jpg") == 3
    assert area.exists("photos_1_1_a.jpg")

    assert area.delete_for_url("http://testserver/public/photos_1_1_a.jpg") is True
    assert not area.exists("photos_1_1_a.jpg")
    assert area.delete("photos_1_1_a.jpg") is False


def test_path_traversal_rejected(area):
    with pytest.raises(ValueError):
        area.path_for("../outside.jpg")


def test_extension_allowed():
    allowed = (".jpg", ".png")
    assert extension_allowed("CAT.JPG", allowed)
    assert not extension_allowed("cat.gif", allowed)
    assert not extension_allowed("cat", allowed)
