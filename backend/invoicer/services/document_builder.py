"""
Document Builder - projects a priced invoice into a paginated A4 layout model.

The model is a sequence of content blocks (title, metadata, parties, item
table, totals) plus the pages they were laid out on. Page coordinates are in
points measured from the top-left corner; the renderer flips them.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Tuple, Union

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfbase.pdfmetrics import stringWidth

from invoicer.schemas.enums import DiscountType
from invoicer.services.invoice_engine import PricedInvoice
from invoicer.utils.money import Currency, format_decimal, format_money

logger = logging.getLogger(__name__)


# ===== Layout constants =====
PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN_LEFT = 20 * mm
MARGIN_RIGHT = 20 * mm
MARGIN_TOP = 20 * mm
MARGIN_BOTTOM = 20 * mm
CONTENT_BOTTOM = PAGE_HEIGHT - MARGIN_BOTTOM
COLUMN_SPLIT = PAGE_WIDTH / 2

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
TITLE_SIZE = 24
HEADING_SIZE = 12
TEXT_SIZE = 10
TOTAL_SIZE = 14

LOGO_BOX = 20 * mm
HEADER_HEIGHT = 40 * mm
META_ROW_HEIGHT = 8 * mm
PARTY_ROW_HEIGHT = 6 * mm
SECTION_GAP = 12 * mm
HEADING_GAP = 10 * mm

# Item table columns
DESC_X = MARGIN_LEFT + 5 * mm
QTY_X = 120 * mm
RATE_X = 135 * mm
DISCOUNT_X = 158 * mm
AMOUNT_RIGHT = PAGE_WIDTH - MARGIN_RIGHT - 3 * mm
DESC_WIDTH = QTY_X - DESC_X - 3 * mm
TABLE_HEADER_HEIGHT = 8 * mm
ROW_HEIGHT = 8 * mm
DESC_LINE_HEIGHT = 5 * mm
DESCENT = 2 * mm
HEADER_FILL = (240, 240, 240)
# description lines a single row may use; the row must fit below the heading and header of a fresh page
MAX_DESC_LINES = 1 + int(
    (CONTENT_BOTTOM - (MARGIN_TOP + HEADING_GAP + TABLE_HEADER_HEIGHT) - DESCENT) // DESC_LINE_HEIGHT
)

# Totals block
TOTALS_LABEL_X = PAGE_WIDTH - MARGIN_RIGHT - 75 * mm
TOTALS_VALUE_RIGHT = PAGE_WIDTH - MARGIN_RIGHT
TOTALS_GAP = 10 * mm
TOTALS_ROW_HEIGHT = 8 * mm

TABLE_HEADERS = ("Description", "Qty", "Rate", "Discount", "Amount")


# ===== Positioned primitives =====
@dataclass(frozen=True)
class TextElement:
    x: float
    y: float  # baseline, from top of page
    text: str
    font: str = FONT
    size: float = TEXT_SIZE
    align: str = "left"  # left, right


@dataclass(frozen=True)
class LineElement:
    x1: float
    y1: float
    x2: float
    y2: float
    width: float = 0.75


@dataclass(frozen=True)
class RectElement:
    x: float
    y: float  # top edge
    width: float
    height: float
    fill: Tuple[int, int, int] = HEADER_FILL


@dataclass(frozen=True)
class ImageElement:
    x: float
    y: float  # top edge
    width: float
    height: float


Element = Union[TextElement, LineElement, RectElement, ImageElement]


@dataclass
class Page:
    number: int
    elements: List[Element] = field(default_factory=list)
    item_indices: List[int] = field(default_factory=list)


# ===== Content blocks =====
@dataclass(frozen=True)
class TitleBlock:
    title: str
    show_logo: bool


@dataclass(frozen=True)
class MetadataBlock:
    rows: Tuple[Tuple[Tuple[str, str], Optional[Tuple[str, str]]], ...]


@dataclass(frozen=True)
class PartyBlock:
    left_heading: str
    right_heading: str
    rows: Tuple[Tuple[str, str], ...]


@dataclass(frozen=True)
class ItemRow:
    description_lines: Tuple[str, ...]
    quantity: str
    rate: str
    discount: str
    amount: str

    @property
    def height(self) -> float:
        return ROW_HEIGHT + (len(self.description_lines) - 1) * DESC_LINE_HEIGHT


@dataclass(frozen=True)
class ItemTableBlock:
    headers: Tuple[str, ...]
    rows: Tuple[ItemRow, ...]


@dataclass(frozen=True)
class TotalsLine:
    label: str
    amount: Decimal
    text: str
    is_total: bool = False


@dataclass(frozen=True)
class TotalsBlock:
    lines: Tuple[TotalsLine, ...]

    @property
    def height(self) -> float:
        regular = sum(1 for line in self.lines if not line.is_total)
        return TOTALS_GAP + regular * TOTALS_ROW_HEIGHT + TOTALS_ROW_HEIGHT + DESCENT


Block = Union[TitleBlock, MetadataBlock, PartyBlock, ItemTableBlock, TotalsBlock]


@dataclass
class DocumentModel:
    invoice_number: str
    currency: Currency
    blocks: Tuple[Block, ...]
    pages: List[Page]
    page_width: float = PAGE_WIDTH
    page_height: float = PAGE_HEIGHT

    def block(self, kind: type):
        for block in self.blocks:
            if isinstance(block, kind):
                return block
        return None

    @property
    def totals(self) -> TotalsBlock:
        return self.block(TotalsBlock)

    @property
    def logo_slot(self) -> Optional[ImageElement]:
        if not self.pages:
            return None
        for element in self.pages[0].elements:
            if isinstance(element, ImageElement):
                return element
        return None


# ===== Text helpers =====
def wrap_text(text: str, font: str, size: float, max_width: float) -> List[str]:
    """Greedy word wrap; tokens wider than the column are broken into chunks"""
    words = str(text).split()

    def split_long_token(token: str) -> List[str]:
        if stringWidth(token, font, size) <= max_width:
            return [token]
        chunks = []
        remaining = token
        while remaining:
            fit = 1
            while fit < len(remaining) and stringWidth(remaining[:fit + 1], font, size) <= max_width:
                fit += 1
            chunks.append(remaining[:fit])
            remaining = remaining[fit:]
        return chunks

    lines: List[str] = []
    current = ""
    for token in words:
        for word in split_long_token(token):
            candidate = f"{current} {word}" if current else word
            if stringWidth(candidate, font, size) <= max_width:
                current = candidate
            else:
                if current:
                    lines.append(current)
                current = word
    if current:
        lines.append(current)
    return lines or [""]


def fit_text(text: str, font: str, size: float, max_width: float) -> str:
    """Clip text to a width, marking the cut with an ellipsis"""
    if stringWidth(text, font, size) <= max_width:
        return text
    while text and stringWidth(text + "...", font, size) > max_width:
        text = text[:-1]
    return text + "..."


def clip_lines(lines: List[str], max_lines: int, font: str, size: float, max_width: float) -> List[str]:
    """Keep at most max_lines wrapped lines, ending the last kept line with an ellipsis"""
    if len(lines) <= max_lines:
        return lines
    kept = lines[:max_lines]
    last = kept[-1]
    while last and stringWidth(last + "...", font, size) > max_width:
        last = last[:-1]
    kept[-1] = last.rstrip() + "..."
    return kept


# ===== Block construction =====
def _discount_text(discount_type: DiscountType, value: Decimal, currency: Currency) -> str:
    if discount_type is DiscountType.PERCENTAGE:
        return f"{format_decimal(value)}%"
    return format_money(value, currency)


def build_blocks(invoice: PricedInvoice, show_logo: bool = False) -> Tuple[Block, ...]:
    """Page-agnostic content blocks, in display order"""
    currency = invoice.currency_info

    metadata = MetadataBlock(rows=(
        (("Invoice Number", invoice.invoice_number), ("Payment Terms", invoice.payment_terms.value)),
        (("Issue Date", invoice.issue_date.isoformat()), ("Due Date", invoice.due_date.isoformat())),
        (("Currency", invoice.currency), None),
    ))

    business_lines = invoice.business.lines()
    client_lines = invoice.client.lines()
    row_count = max(len(business_lines), len(client_lines))
    parties = PartyBlock(
        left_heading="Invoice From:",
        right_heading="Bill To:",
        rows=tuple(
            (
                business_lines[i] if i < len(business_lines) else "",
                client_lines[i] if i < len(client_lines) else "",
            )
            for i in range(row_count)
        ),
    )

    table = ItemTableBlock(
        headers=TABLE_HEADERS,
        rows=tuple(
            ItemRow(
                description_lines=tuple(clip_lines(
                    wrap_text(item.description, FONT, TEXT_SIZE, DESC_WIDTH),
                    MAX_DESC_LINES, FONT, TEXT_SIZE, DESC_WIDTH,
                )),
                quantity=format_decimal(item.quantity),
                rate=format_money(item.rate, currency),
                discount=_discount_text(item.discount_type, item.discount_value, currency),
                amount=format_money(item.amount, currency),
            )
            for item in invoice.items
        ),
    )

    totals = [TotalsLine("Subtotal", invoice.subtotal, format_money(invoice.subtotal, currency))]
    if invoice.tax_rate > 0:
        totals.append(TotalsLine(
            f"Tax ({format_decimal(invoice.tax_rate)}%)",
            invoice.tax_amount,
            format_money(invoice.tax_amount, currency),
        ))
    if invoice.shipping_cost > 0:
        totals.append(TotalsLine(
            "Shipping", invoice.shipping_cost, format_money(invoice.shipping_cost, currency)
        ))
    totals.append(TotalsLine("Total", invoice.total, format_money(invoice.total, currency), is_total=True))

    return (
        TitleBlock(title="INVOICE", show_logo=show_logo),
        metadata,
        parties,
        table,
        TotalsBlock(lines=tuple(totals)),
    )


# ===== Pagination =====
class _Cursor:
    """Tracks the current page and vertical position while laying out blocks"""

    def __init__(self):
        self.pages: List[Page] = [Page(number=1)]
        self.y = MARGIN_TOP

    @property
    def page(self) -> Page:
        return self.pages[-1]

    def remaining(self) -> float:
        return CONTENT_BOTTOM - self.y

    def new_page(self):
        self.pages.append(Page(number=len(self.pages) + 1))
        self.y = MARGIN_TOP

    def add(self, element: Element):
        self.page.elements.append(element)


def _place_title(cursor: _Cursor, block: TitleBlock):
    if block.show_logo:
        cursor.add(ImageElement(MARGIN_LEFT, cursor.y, LOGO_BOX, LOGO_BOX))
    cursor.add(TextElement(
        PAGE_WIDTH - MARGIN_RIGHT, cursor.y + 15 * mm, block.title, FONT_BOLD, TITLE_SIZE, "right"
    ))
    cursor.y += HEADER_HEIGHT


def _place_metadata(cursor: _Cursor, block: MetadataBlock):
    cursor.add(TextElement(MARGIN_LEFT, cursor.y, "Invoice Details", FONT_BOLD, HEADING_SIZE))
    cursor.y += HEADING_GAP
    column_width = COLUMN_SPLIT - MARGIN_LEFT - 5 * mm
    for left, right in block.rows:
        text = fit_text(f"{left[0]}: {left[1]}", FONT, TEXT_SIZE, column_width)
        cursor.add(TextElement(MARGIN_LEFT, cursor.y, text))
        if right:
            text = fit_text(f"{right[0]}: {right[1]}", FONT, TEXT_SIZE, column_width)
            cursor.add(TextElement(COLUMN_SPLIT, cursor.y, text))
        cursor.y += META_ROW_HEIGHT
    cursor.y += SECTION_GAP


def _place_party_headings(cursor: _Cursor, block: PartyBlock):
    cursor.add(TextElement(MARGIN_LEFT, cursor.y, block.left_heading, FONT_BOLD, HEADING_SIZE))
    cursor.add(TextElement(COLUMN_SPLIT, cursor.y, block.right_heading, FONT_BOLD, HEADING_SIZE))
    cursor.y += HEADING_GAP


def _place_parties(cursor: _Cursor, block: PartyBlock):
    # the block moves whole when it fits on a page; taller blocks run on with repeated headings
    needed = HEADING_GAP + len(block.rows) * PARTY_ROW_HEIGHT
    fits_one_page = needed + DESCENT <= CONTENT_BOTTOM - MARGIN_TOP
    if needed + DESCENT > cursor.remaining() and (fits_one_page or HEADING_GAP + DESCENT > cursor.remaining()):
        cursor.new_page()
    _place_party_headings(cursor, block)
    column_width = COLUMN_SPLIT - MARGIN_LEFT - 5 * mm
    for left, right in block.rows:
        if cursor.y + DESCENT > CONTENT_BOTTOM:
            cursor.new_page()
            _place_party_headings(cursor, block)
        if left:
            cursor.add(TextElement(MARGIN_LEFT, cursor.y, fit_text(left, FONT, TEXT_SIZE, column_width)))
        if right:
            cursor.add(TextElement(COLUMN_SPLIT, cursor.y, fit_text(right, FONT, TEXT_SIZE, column_width)))
        cursor.y += PARTY_ROW_HEIGHT
    cursor.y += SECTION_GAP


def _place_table_header(cursor: _Cursor, headers: Tuple[str, ...]):
    top = cursor.y
    cursor.add(RectElement(MARGIN_LEFT, top, PAGE_WIDTH - MARGIN_LEFT - MARGIN_RIGHT, TABLE_HEADER_HEIGHT))
    baseline = top + 6 * mm
    description, qty, rate, discount, amount = headers
    cursor.add(TextElement(DESC_X, baseline, description, FONT_BOLD, TEXT_SIZE))
    cursor.add(TextElement(QTY_X, baseline, qty, FONT_BOLD, TEXT_SIZE))
    cursor.add(TextElement(RATE_X, baseline, rate, FONT_BOLD, TEXT_SIZE))
    cursor.add(TextElement(DISCOUNT_X, baseline, discount, FONT_BOLD, TEXT_SIZE))
    cursor.add(TextElement(AMOUNT_RIGHT, baseline, amount, FONT_BOLD, TEXT_SIZE, "right"))
    cursor.y = top + TABLE_HEADER_HEIGHT + 4 * mm


def _row_fits(cursor: _Cursor, row: ItemRow) -> bool:
    extent = (len(row.description_lines) - 1) * DESC_LINE_HEIGHT + DESCENT
    return cursor.y + extent <= CONTENT_BOTTOM


def _place_table(cursor: _Cursor, block: ItemTableBlock):
    # heading, header row and at least one row stay together
    first_row_height = block.rows[0].height if block.rows else 0
    if HEADING_GAP + TABLE_HEADER_HEIGHT + first_row_height + 4 * mm > cursor.remaining():
        cursor.new_page()
    cursor.add(TextElement(MARGIN_LEFT, cursor.y, "Items", FONT_BOLD, HEADING_SIZE))
    cursor.y += HEADING_GAP - 4 * mm
    _place_table_header(cursor, block.headers)

    for index, row in enumerate(block.rows):
        if not _row_fits(cursor, row):
            cursor.new_page()
            _place_table_header(cursor, block.headers)
        y = cursor.y
        for offset, line in enumerate(row.description_lines):
            cursor.add(TextElement(DESC_X, y + offset * DESC_LINE_HEIGHT, line))
        cursor.add(TextElement(QTY_X, y, row.quantity))
        cursor.add(TextElement(RATE_X, y, row.rate))
        cursor.add(TextElement(DISCOUNT_X, y, row.discount))
        cursor.add(TextElement(AMOUNT_RIGHT, y, row.amount, align="right"))
        cursor.page.item_indices.append(index)
        cursor.y += row.height


def _place_totals(cursor: _Cursor, block: TotalsBlock):
    if block.height > cursor.remaining():
        cursor.new_page()
    cursor.y += TOTALS_GAP
    for line in block.lines:
        if line.is_total:
            cursor.add(LineElement(TOTALS_LABEL_X, cursor.y - 5 * mm, TOTALS_VALUE_RIGHT, cursor.y - 5 * mm))
            cursor.y += 3 * mm
            cursor.add(TextElement(TOTALS_LABEL_X, cursor.y, f"{line.label}:", FONT_BOLD, TOTAL_SIZE))
            cursor.add(TextElement(TOTALS_VALUE_RIGHT, cursor.y, line.text, FONT_BOLD, TOTAL_SIZE, "right"))
        else:
            cursor.add(TextElement(TOTALS_LABEL_X, cursor.y, f"{line.label}:"))
            cursor.add(TextElement(TOTALS_VALUE_RIGHT, cursor.y, line.text, align="right"))
        cursor.y += TOTALS_ROW_HEIGHT


def build_layout(invoice: PricedInvoice, show_logo: bool = False) -> DocumentModel:
    """
    Build the paginated layout model for an invoice.

    Only the item table is split across pages; a row never is. The totals
    block moves to a new page whole when it does not fit.

    Args:
        invoice: Priced invoice
        show_logo: Reserve the logo box in the header

    Returns:
        DocumentModel with content blocks and positioned pages
    """
    blocks = build_blocks(invoice, show_logo)
    cursor = _Cursor()
    for block in blocks:
        if isinstance(block, TitleBlock):
            _place_title(cursor, block)
        elif isinstance(block, MetadataBlock):
            _place_metadata(cursor, block)
        elif isinstance(block, PartyBlock):
            _place_parties(cursor, block)
        elif isinstance(block, ItemTableBlock):
            _place_table(cursor, block)
        elif isinstance(block, TotalsBlock):
            _place_totals(cursor, block)

    logger.debug(
        f"Laid out invoice {invoice.invoice_number}: {len(invoice.items)} items on {len(cursor.pages)} page(s)"
    )
    return DocumentModel(
        invoice_number=invoice.invoice_number,
        currency=invoice.currency_info,
        blocks=blocks,
        pages=cursor.pages,
    )
