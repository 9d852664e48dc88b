"""Unit tests for PDF rendering and the render-with-logo service."""
from datetime import date

import httpx

from invoicer.services.document_builder import build_layout
from invoicer.services.invoice_engine import build_invoice, reprice
from invoicer.services.invoice_pdf_service import content_disposition, pdf_filename, render_invoice_pdf
from invoicer.services.pdf_renderer import prepare_logo, render


class TestRender:

    def test_produces_pdf(self, sample_invoice):
        content = render(build_layout(sample_invoice))
        assert content.startswith(b"%PDF")
        assert content.rstrip().endswith(b"%%EOF")

    def test_deterministic(self, sample_invoice):
        model = build_layout(sample_invoice)
        assert render(model) == render(model)

    def test_text_is_drawn(self, sample_invoice):
        content = render(build_layout(sample_invoice))
        assert b"INV-2024-0001" in content
        assert b"115.00" in content

    def test_multi_page(self):
        invoice = build_invoice(
            "INV-LONG", "NET30", date(2024, 6, 1),
            items=[{"description": f"Item {n}", "quantity": 1, "rate": 1} for n in range(80)],
        )
        model = build_layout(invoice)
        assert len(model.pages) >= 2
        content = render(model)
        assert content.startswith(b"%PDF")
        assert b"/Count %d" % len(model.pages) in content

    def test_with_logo(self, sample_invoice, png_bytes):
        model = build_layout(sample_invoice, show_logo=True)
        with_logo = render(model, logo=png_bytes)
        without_logo = render(model)
        assert with_logo.startswith(b"%PDF")
        assert b"/Subtype /Image" in with_logo
        assert b"/Subtype /Image" not in without_logo

    def test_undecodable_logo_is_skipped(self, sample_invoice):
        model = build_layout(sample_invoice, show_logo=True)
        content = render(model, logo=b"definitely not an image")
        assert content.startswith(b"%PDF")
        assert b"/Subtype /Image" not in content


class TestPrepareLogo:

    def test_keeps_aspect_ratio_and_centers(self, sample_invoice, png_bytes):
        slot = build_layout(sample_invoice, show_logo=True).logo_slot
        _, x, y_top, width, height = prepare_logo(png_bytes, slot)
        # 120x60 source into a square box
        assert abs(width - slot.width) < 1e-6
        assert abs(height - slot.height / 2) < 1e-6
        assert abs(x - slot.x) < 1e-6
        assert abs(y_top - (slot.y + slot.height / 4)) < 1e-6


class TestRenderInvoicePdf:

    def test_without_logo(self, sample_invoice):
        rendered = render_invoice_pdf(sample_invoice)
        assert rendered.content.startswith(b"%PDF")
        assert rendered.filename == "Invoice_INV-2024-0001.pdf"
        assert rendered.page_count == 1
        assert rendered.degraded == []

    def test_uploaded_logo(self, sample_invoice, storage, png_bytes):
        key = storage.upload_file(png_bytes, "logo.png", "image/png")
        invoice = reprice(sample_invoice, logo_url=storage.get_file_url(key))
        rendered = render_invoice_pdf(invoice, storage=storage)
        assert rendered.degraded == []
        assert b"/Subtype /Image" in rendered.content

    def test_missing_logo_degrades(self, sample_invoice, storage):
        invoice = reprice(sample_invoice, logo_url="/uploads/missing.png")
        rendered = render_invoice_pdf(invoice, storage=storage)
        assert rendered.content.startswith(b"%PDF")
        assert rendered.degraded == ["logo-unavailable"]

    def test_unreachable_logo_degrades(self, sample_invoice, storage):
        def handler(request):
            return httpx.Response(503)

        invoice = reprice(sample_invoice, logo_url="https://cdn.example.test/logo.png")
        with httpx.Client(transport=httpx.MockTransport(handler)) as client:
            rendered = render_invoice_pdf(invoice, storage=storage, client=client)
        assert rendered.content.startswith(b"%PDF")
        assert rendered.degraded == ["logo-unavailable"]


def test_pdf_filename_is_safe():
    assert pdf_filename("INV/2024 01") == "Invoice_INV_2024_01.pdf"
    assert pdf_filename("") == "Invoice_draft.pdf"


def test_content_disposition_is_latin1_safe():
    header = content_disposition(pdf_filename("Rechnung-Ä/7"))
    header.encode("latin-1")
    assert 'filename="Invoice_Rechnung-A_7.pdf"' in header
    assert "filename*=UTF-8''Invoice_Rechnung-%C3%84_7.pdf" in header
