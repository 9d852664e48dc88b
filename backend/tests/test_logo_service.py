"""Unit tests for logo loading (uploaded files and remote URLs)."""
from unittest.mock import Mock

import httpx
import pytest
from botocore.exceptions import EndpointConnectionError, ReadTimeoutError

from invoicer.config import settings
from invoicer.exceptions import PersistenceError, RenderingDegraded
from invoicer.services.invoice_engine import reprice
from invoicer.services.invoice_pdf_service import render_invoice_pdf
from invoicer.services.logo_service import load_logo
from invoicer.services.storage_service import StorageService


def mock_client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestRemoteLogo:

    def test_fetches_image(self, storage, png_bytes):
        def handler(request):
            return httpx.Response(200, content=png_bytes, headers={"content-type": "image/png"})

        with mock_client(handler) as client:
            assert load_logo("https://cdn.example.test/logo.png", storage=storage, client=client) == png_bytes

    def test_retries_once(self, storage, png_bytes):
        calls = []

        def handler(request):
            calls.append(request.url)
            if len(calls) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, content=png_bytes, headers={"content-type": "image/png"})

        with mock_client(handler) as client:
            assert load_logo("https://cdn.example.test/logo.png", storage=storage, client=client) == png_bytes
        assert len(calls) == 2

    def test_gives_up_after_retry(self, storage):
        calls = []

        def handler(request):
            calls.append(request.url)
            return httpx.Response(500)

        with mock_client(handler) as client:
            with pytest.raises(RenderingDegraded, match="could not be fetched"):
                load_logo("https://cdn.example.test/logo.png", storage=storage, client=client)
        assert len(calls) == 2

    def test_non_image_content(self, storage):
        def handler(request):
            return httpx.Response(200, text="<html></html>", headers={"content-type": "text/html"})

        with mock_client(handler) as client:
            with pytest.raises(RenderingDegraded, match="non-image"):
                load_logo("https://cdn.example.test/logo.png", storage=storage, client=client)

    def test_corrupt_image(self, storage):
        def handler(request):
            return httpx.Response(200, content=b"\x89PNG broken", headers={"content-type": "image/png"})

        with mock_client(handler) as client:
            with pytest.raises(RenderingDegraded, match="not a readable image"):
                load_logo("https://cdn.example.test/logo.png", storage=storage, client=client)


class TestUploadedLogo:

    def test_loads_from_storage(self, storage, png_bytes):
        key = storage.upload_file(png_bytes, "brand.png", "image/png")
        assert load_logo(f"/uploads/{key}", storage=storage) == png_bytes

    def test_missing_upload(self, storage):
        with pytest.raises(RenderingDegraded, match="unavailable"):
            load_logo("/uploads/nope.png", storage=storage)

    def test_unsupported_reference(self, storage):
        with pytest.raises(RenderingDegraded, match="Unsupported"):
            load_logo("ftp://example.test/logo.png", storage=storage)


class TestObjectStorageLogo:
    """Logos stored in S3 degrade the render instead of failing it."""

    def unreachable_storage(self, storage, error):
        storage.s3_client = Mock()
        storage.s3_client.get_object.side_effect = error
        return storage

    def test_endpoint_unreachable(self, storage):
        storage = self.unreachable_storage(
            storage, EndpointConnectionError(endpoint_url="https://s3.example.test")
        )
        with pytest.raises(PersistenceError):
            storage.download_file("logo.png")
        with pytest.raises(RenderingDegraded, match="unavailable"):
            load_logo("/uploads/logo.png", storage=storage)

    def test_read_timeout(self, storage):
        storage = self.unreachable_storage(
            storage, ReadTimeoutError(endpoint_url="https://s3.example.test")
        )
        with pytest.raises(RenderingDegraded):
            load_logo("/uploads/logo.png", storage=storage)

    def test_pdf_renders_without_logo(self, storage, sample_invoice):
        storage = self.unreachable_storage(
            storage, EndpointConnectionError(endpoint_url="https://s3.example.test")
        )
        invoice = reprice(sample_invoice, logo_url="/uploads/logo.png")
        rendered = render_invoice_pdf(invoice, storage=storage)
        assert rendered.content.startswith(b"%PDF")
        assert rendered.degraded == ["logo-unavailable"]

    def test_upload_failure_is_persistence_error(self, storage, png_bytes):
        storage.s3_client = Mock()
        storage.s3_client.put_object.side_effect = EndpointConnectionError(endpoint_url="https://s3.example.test")
        with pytest.raises(PersistenceError):
            storage.upload_file(png_bytes, "logo.png", "image/png")

    def test_client_uses_logo_fetch_timeouts(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "storage_access_key_id", "test-key")
        monkeypatch.setattr(settings, "storage_secret_access_key", "test-secret")
        storage = StorageService(local_storage_dir=str(tmp_path))
        assert storage.s3_client is not None
        assert storage.s3_client.meta.config.connect_timeout == settings.logo_fetch_timeout_seconds
        assert storage.s3_client.meta.config.read_timeout == settings.logo_fetch_timeout_seconds
