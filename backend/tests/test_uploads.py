import cloudinary.uploader
import pytest
from cloudinary.exceptions import Error as CloudinaryError

from config.constants import MAX_IMAGE_BYTES

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def uploads(monkeypatch):
    calls = []

    def fake_upload(data, **options):
        calls.append(options)
        return {"secure_url": "https://res.cloudinary.com/demo/image/upload/v1/tomato.png"}

    monkeypatch.setattr(cloudinary.uploader, "upload", fake_upload)
    return calls


def _upload(client, user, content, content_type="image/png", filename="tomato.png"):
    return client.post(
        "/api/uploads/listing-image",
        files={"file": (filename, content, content_type)},
        headers=user["headers"],
    )


def test_farmer_uploads_listing_image(client, farmer, uploads):
    resp = _upload(client, farmer, PNG)

    assert resp.status_code == 200
    assert resp.json()["image_url"].startswith("https://res.cloudinary.com/")
    assert uploads[0]["folder"].endswith(f"/listings/{farmer['id']}")


def test_jpeg_accepted(client, farmer, uploads):
    assert _upload(client, farmer, b"\xff\xd8\xff" + b"\x00" * 16, "image/jpeg", "a.jpg").status_code == 200


def test_unsupported_type_rejected(client, farmer, uploads):
    resp = _upload(client, farmer, b"GIF89a", "image/gif", "a.gif")

    assert resp.status_code == 400
    assert uploads == []


def test_oversized_image_rejected(client, farmer, uploads):
    resp = _upload(client, farmer, b"\x00" * (MAX_IMAGE_BYTES + 1))

    assert resp.status_code == 413
    assert resp.json()["code"] == "IMAGE_TOO_LARGE"
    assert uploads == []


def test_only_farmers_upload(client, buyer, uploads):
    assert _upload(client, buyer, PNG).status_code == 403


def test_provider_failure_is_transient(client, farmer, monkeypatch):
    def broken_upload(data, **options):
        raise CloudinaryError("boom")

    monkeypatch.setattr(cloudinary.uploader, "upload", broken_upload)

    resp = _upload(client, farmer, PNG)

    assert resp.status_code == 503
    assert resp.json()["retryable"] is True
