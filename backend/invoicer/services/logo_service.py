"""
Logo loading for PDF rendering.

Logos are either uploaded files (/uploads/<key>) or remote http(s) URLs.
Every failure is reported as RenderingDegraded so the caller can render
without the logo.
"""
import io
import logging
from typing import Optional

import httpx
from PIL import Image, UnidentifiedImageError

from invoicer.config import settings
from invoicer.exceptions import InvoiceError, RenderingDegraded
from invoicer.services.storage_service import StorageService, storage_service

logger = logging.getLogger(__name__)


def _fetch_remote(url: str, timeout: float, retries: int, max_bytes: int, client: Optional[httpx.Client] = None) -> bytes:
    owns_client = client is None
    client = client or httpx.Client(timeout=timeout, follow_redirects=True)
    last_error = None
    try:
        for attempt in range(retries + 1):
            try:
                response = client.get(url, timeout=timeout)
                response.raise_for_status()
                content_type = response.headers.get("content-type", "")
                if content_type and not content_type.startswith("image/"):
                    raise RenderingDegraded(f"Logo URL returned non-image content ({content_type})")
                if len(response.content) > max_bytes:
                    raise RenderingDegraded(f"Logo exceeds {max_bytes} bytes")
                return response.content
            except httpx.HTTPError as e:
                last_error = e
                logger.info(f"Logo fetch attempt {attempt + 1} failed for {url}: {str(e)}")
    finally:
        if owns_client:
            client.close()
    raise RenderingDegraded(f"Logo could not be fetched from {url}: {str(last_error)}")


def load_logo(
    logo_url: str,
    storage: Optional[StorageService] = None,
    client: Optional[httpx.Client] = None,
) -> bytes:
    """
    Load and sanity-check logo image bytes.

    Args:
        logo_url: /uploads/<key> reference or http(s) URL
        storage: Storage service for uploaded logos
        client: Optional httpx client (tests inject a mock transport)

    Returns:
        Raw image bytes that Pillow can decode

    Raises:
        RenderingDegraded: logo missing, unreachable, too large or not an image
    """
    storage = storage or storage_service
    key = storage.key_from_url(logo_url)

    if key:
        try:
            content = storage.download_file(key)
        except InvoiceError as e:
            raise RenderingDegraded(f"Uploaded logo unavailable: {str(e)}")
    elif logo_url.startswith(("http://", "https://")):
        content = _fetch_remote(
            logo_url,
            timeout=settings.logo_fetch_timeout_seconds,
            retries=settings.logo_fetch_retries,
            max_bytes=settings.max_upload_bytes,
            client=client,
        )
    else:
        raise RenderingDegraded(f"Unsupported logo reference: {logo_url}")

    try:
        Image.open(io.BytesIO(content)).verify()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise RenderingDegraded(f"Logo is not a readable image: {str(e)}")
    return content
