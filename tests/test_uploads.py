"""
tests/test_uploads.py — Image upload validation & storage
"""

from __future__ import annotations

import asyncio

import pytest

from gophergather.errors import InvalidInput
from gophergather.services import upload_service

PNG = b"\x89PNG\r\n\x1a\n" + b"0" * 64


def run_async(coro):
    return asyncio.get_event_loop_policy().new_event_loop().run_until_complete(coro)


@pytest.fixture(autouse=True)
def _upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(upload_service, "UPLOAD_DIR", tmp_path)
    return tmp_path


class TestValidateUpload:
    def test_accepts_png(self):
        assert upload_service.validate_upload("Flyer.PNG", PNG, "image/png", "events") == ".png"

    def test_rejects_svg(self):
        with pytest.raises(InvalidInput, match="File type not allowed"):
            upload_service.validate_upload("x.svg", PNG, "image/svg+xml", "events")

    def test_rejects_mime_mismatch(self):
        with pytest.raises(InvalidInput, match="MIME type not allowed"):
            upload_service.validate_upload("x.png", PNG, "text/html", "events")

    def test_avatar_limit_is_smaller(self):
        big = b"0" * (6 * 1024 * 1024)
        upload_service.validate_upload("x.png", big, None, "events")
        with pytest.raises(InvalidInput, match="too large"):
            upload_service.validate_upload("x.png", big, None, "avatars")

    def test_empty_and_unknown_bucket(self):
        with pytest.raises(InvalidInput, match="empty"):
            upload_service.validate_upload("x.png", b"", None, "events")
        with pytest.raises(InvalidInput, match="Unknown upload bucket"):
            upload_service.validate_upload("x.png", PNG, None, "secrets")


class TestSaveAndDelete:
    def test_round_trip(self, _upload_dir):
        url = run_async(upload_service.save_upload("flyer.png", PNG, "image/png"))
        assert url.startswith("/api/uploads/events/") and url.endswith(".png")

        stored = _upload_dir / "events" / url.rsplit("/", 1)[1]
        assert stored.read_bytes() == PNG

        assert upload_service.delete_upload(url) is True
        assert not stored.exists()
        assert upload_service.delete_upload(url) is False

    def test_delete_refuses_path_tricks(self):
        assert upload_service.delete_upload("/api/uploads/events/../../etc/passwd") is False
        assert upload_service.delete_upload("/etc/passwd") is False
        assert upload_service.delete_upload(None) is False

    def test_public_url(self):
        assert upload_service.public_url(None) is None
        assert upload_service.public_url("https://cdn/x.png") == "https://cdn/x.png"
        assert upload_service.public_url("avatars/x.png") == "/api/uploads/avatars/x.png"
