"""
PDF Renderer - draws a DocumentModel onto A4 pages with the reportlab canvas.

Rendering is deterministic: the canvas runs in invariant mode, so the same
model (and logo) always produces the same bytes.
"""
import io
import logging
from typing import Optional

from PIL import Image, UnidentifiedImageError
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from invoicer.exceptions import RenderingDegraded
from invoicer.services.document_builder import (
    DocumentModel,
    ImageElement,
    LineElement,
    RectElement,
    TextElement,
)

logger = logging.getLogger(__name__)


def prepare_logo(logo: bytes, box: ImageElement) -> tuple:
    """
    Decode a logo and compute its placement inside the logo box.

    The image keeps its aspect ratio and is centered in the box.

    Returns:
        (ImageReader, x, y_top, width, height)

    Raises:
        RenderingDegraded: image bytes cannot be decoded
    """
    try:
        image = Image.open(io.BytesIO(logo))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise RenderingDegraded(f"Logo could not be decoded: {str(e)}")

    if image.mode not in ("RGB", "RGBA", "L"):
        image = image.convert("RGBA")

    img_w, img_h = image.size
    scale = min(box.width / img_w, box.height / img_h)
    width, height = img_w * scale, img_h * scale
    x = box.x + (box.width - width) / 2
    y_top = box.y + (box.height - height) / 2
    return ImageReader(image), x, y_top, width, height


def render(model: DocumentModel, logo: Optional[bytes] = None) -> bytes:
    """
    Render the layout model to PDF bytes.

    Args:
        model: Paginated layout from build_layout
        logo: Raw image bytes; drawn into the model's logo box when both exist

    Returns:
        PDF document bytes
    """
    buffer = io.BytesIO()
    page_height = model.page_height
    pdf = canvas.Canvas(
        buffer,
        pagesize=(model.page_width, page_height),
        invariant=1,
        pageCompression=0,
    )
    pdf.setTitle(f"Invoice {model.invoice_number}")
    pdf.setCreator("invoicer")

    logo_placement = None
    slot = model.logo_slot
    if logo and slot:
        try:
            logo_placement = prepare_logo(logo, slot)
        except RenderingDegraded as e:
            logger.warning(f"Rendering invoice {model.invoice_number} without logo: {str(e)}")

    for index, page in enumerate(model.pages):
        if index > 0:
            pdf.showPage()
        for element in page.elements:
            if isinstance(element, TextElement):
                pdf.setFont(element.font, element.size)
                y = page_height - element.y
                if element.align == "right":
                    pdf.drawRightString(element.x, y, element.text)
                else:
                    pdf.drawString(element.x, y, element.text)
            elif isinstance(element, RectElement):
                r, g, b = element.fill
                pdf.setFillColorRGB(r / 255, g / 255, b / 255)
                pdf.rect(
                    element.x,
                    page_height - element.y - element.height,
                    element.width,
                    element.height,
                    stroke=0,
                    fill=1,
                )
                pdf.setFillColorRGB(0, 0, 0)
            elif isinstance(element, LineElement):
                pdf.setLineWidth(element.width)
                pdf.line(element.x1, page_height - element.y1, element.x2, page_height - element.y2)
            elif isinstance(element, ImageElement) and logo_placement:
                reader, x, y_top, width, height = logo_placement
                pdf.drawImage(reader, x, page_height - y_top - height, width=width, height=height, mask="auto")

    pdf.save()
    logger.info(f"Rendered invoice {model.invoice_number} ({len(model.pages)} page(s))")
    return buffer.getvalue()
