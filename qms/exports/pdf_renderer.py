"""
Quotation PDF renderer.

Draws the customer-facing quotation onto blank A4 pages with PyMuPDF
(fitz): customer and reference boxes, an item table that continues onto
new pages as needed, the totals block, terms and a signature block.
All coordinates are in PDF points from the top-left corner.
"""

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from qms.core import get_logger

logger = get_logger("qms.exports.pdf_renderer")

MARGIN = 50
FONT = "helv"
FONT_BOLD = "hebo"
BODY_SIZE = 9
LINE_GAP = 12
ROW_PADDING = 6
HEADER_HEIGHT = 18
NAVY = (30 / 255, 58 / 255, 95 / 255)
BLACK = (0, 0, 0)
HEADER_GREY = (0.94, 0.94, 0.94)

# (header, width in points, right-aligned)
COLUMNS = [
    ("Sr.No", 35, False),
    ("Description of Goods/Services", 190, False),
    ("A/U", 45, False),
    ("Qty", 40, True),
    ("Unit Price", 65, True),
    ("Total Price", 70, True),
    ("GST Rate", 50, True),
]


def _fitz():
    try:
        import fitz
    except ImportError:
        raise ImportError("PyMuPDF is required. Install with: pip install PyMuPDF>=1.23.0")
    return fitz


def _fmt_money(value: Any) -> str:
    return f"{float(value or 0):,.2f}"


def _fmt_pct(value: Any) -> str:
    pct = float(value or 0)
    return f"{pct:g}%"


def wrap_text(text: str, width: float, fontsize: float = BODY_SIZE,
              fontname: str = FONT) -> List[str]:
    """Greedy word wrap to a width in points; overlong words are split."""
    fitz = _fitz()
    lines: List[str] = []
    for paragraph in str(text or "").splitlines() or [""]:
        current = ""
        for word in paragraph.split():
            candidate = f"{current} {word}".strip()
            if fitz.get_text_length(candidate, fontname=fontname, fontsize=fontsize) <= width:
                current = candidate
                continue
            if current:
                lines.append(current)
            while fitz.get_text_length(word, fontname=fontname, fontsize=fontsize) > width:
                cut = len(word)
                while cut > 1 and fitz.get_text_length(
                        word[:cut], fontname=fontname, fontsize=fontsize) > width:
                    cut -= 1
                lines.append(word[:cut])
                word = word[cut:]
            current = word
        lines.append(current)
    return lines


class _Canvas:
    """Tracks the current page and vertical position while drawing."""

    def __init__(self, doc):
        self.fitz = _fitz()
        self.doc = doc
        self.rect = self.fitz.paper_rect("a4")
        self.page = None
        self.y = 0.0
        self.new_page()

    @property
    def width(self) -> float:
        return self.rect.width

    @property
    def bottom(self) -> float:
        return self.rect.height - MARGIN

    def new_page(self) -> None:
        self.page = self.doc.new_page(width=self.rect.width, height=self.rect.height)
        self.y = MARGIN

    def ensure(self, height: float) -> bool:
        """Start a new page when ``height`` does not fit. Returns True if it did."""
        if self.y + height > self.bottom:
            self.new_page()
            return True
        return False

    def text(self, x: float, y: float, value: str, bold: bool = False,
             size: float = BODY_SIZE, color=BLACK, right: Optional[float] = None) -> None:
        fontname = FONT_BOLD if bold else FONT
        if right is not None:
            x = right - self.fitz.get_text_length(value, fontname=fontname, fontsize=size)
        self.page.insert_text((x, y), value, fontname=fontname, fontsize=size, color=color)

    def box(self, x0: float, y0: float, x1: float, y1: float, fill=None, width: float = 0.5) -> None:
        self.page.draw_rect(self.fitz.Rect(x0, y0, x1, y1), color=None if fill else BLACK,
                            fill=fill, width=width)

    def line(self, x0: float, y0: float, x1: float, y1: float, width: float = 0.5) -> None:
        self.page.draw_line((x0, y0), (x1, y1), color=BLACK, width=width)


def _draw_header(c: _Canvas, quotation: Mapping[str, Any], settings: Mapping[str, Any]) -> None:
    if settings.get("company_name"):
        c.text(MARGIN, c.y + 12, settings["company_name"], bold=True, size=16, color=NAVY)
        contact = " | ".join(
            str(settings[k]) for k in ("company_address", "company_phone", "company_email")
            if settings.get(k)
        )
        if contact:
            c.text(MARGIN, c.y + 26, contact, size=8)
        c.y += 40

    box_w, box_h = 240, 80
    top = c.y

    # Customer box
    c.box(MARGIN, top, MARGIN + box_w, top + box_h)
    c.text(MARGIN + 8, top + 16, (quotation.get("customer_name") or "").upper(),
           bold=True, size=11, color=NAVY)
    address = ", ".join(
        str(quotation[k]) for k in ("customer_address", "customer_city") if quotation.get(k)
    )
    y = top + 30
    for line in wrap_text(address, box_w - 16)[:3]:
        c.text(MARGIN + 8, y, line)
        y += LINE_GAP
    if quotation.get("customer_contact"):
        c.text(MARGIN + 8, min(y, top + box_h - 8), f"Attn: {quotation['customer_contact']}")

    # Date / reference box
    right_x = c.width - MARGIN - box_w
    c.box(right_x, top, right_x + box_w, top + box_h)
    rows = [
        ("Date:", quotation.get("quotation_date") or ""),
        ("Quotation No:", quotation.get("quotation_number") or ""),
        ("Ref.No:", quotation.get("reference") or ""),
        ("Valid Until:", quotation.get("valid_until") or ""),
    ]
    y = top + 16
    for label, value in rows:
        c.text(right_x + 8, y, label, bold=True)
        c.text(right_x + 85, y, str(value))
        y += 16

    c.y = top + box_h + 28
    title = f"Quotation for ({quotation.get('reference') or quotation.get('quotation_number') or 'N/A'})"
    c.text(MARGIN, c.y, title, bold=True, size=12)
    c.y += 14


def _draw_table_header(c: _Canvas) -> None:
    table_w = sum(w for _, w, _ in COLUMNS)
    c.box(MARGIN, c.y, MARGIN + table_w, c.y + HEADER_HEIGHT, fill=HEADER_GREY)
    x = MARGIN
    for header, width, right in COLUMNS:
        label = header if c.fitz.get_text_length(header, fontname=FONT_BOLD, fontsize=8) < width - 6 \
            else "Description"
        if right:
            c.text(0, c.y + 12, label, bold=True, size=8, right=x + width - 4)
        else:
            c.text(x + 4, c.y + 12, label, bold=True, size=8)
        x += width
    c.y += HEADER_HEIGHT


def _lines_that_fit(c: _Canvas) -> int:
    return max(int((c.bottom - c.y - ROW_PADDING) // LINE_GAP), 0)


def _continue_table(c: _Canvas) -> None:
    c.new_page()
    _draw_table_header(c)


def _draw_row(c: _Canvas, cells: List[Optional[str]], lines: List[str]) -> None:
    """One table row; the ``None`` cell holds the wrapped description lines."""
    table_w = sum(w for _, w, _ in COLUMNS)
    x = MARGIN
    for (header, width, right), value in zip(COLUMNS, cells):
        if value is None:
            y = c.y + 12
            for line in lines:
                c.text(x + 4, y, line)
                y += LINE_GAP
        elif value and right:
            c.text(0, c.y + 12, value, right=x + width - 4)
        elif value:
            c.text(x + 4, c.y + 12, value)
        x += width
    c.y += max(len(lines), 1) * LINE_GAP + ROW_PADDING
    c.line(MARGIN, c.y, MARGIN + table_w, c.y, width=0.3)


def _draw_items(c: _Canvas, items: List[Mapping[str, Any]]) -> None:
    desc_w = COLUMNS[1][1] - 8
    _draw_table_header(c)
    page_capacity = int((c.bottom - MARGIN - HEADER_HEIGHT - ROW_PADDING) // LINE_GAP)

    for index, item in enumerate(items, 1):
        description = item.get("description") or item.get("item_name") or ""
        if item.get("item_name") and item.get("description") and item["item_name"] != item["description"]:
            description = f"{item['item_name']}: {item['description']}"
        lines = wrap_text(description, desc_w) or [""]

        gross = float(item.get("quantity") or 0) * float(item.get("unit_price") or 0)
        cells = [
            str(index),
            None,
            item.get("unit_of_measure") or "No",
            f"{float(item.get('quantity') or 0):g}",
            _fmt_money(item.get("unit_price")),
            _fmt_money(gross),
            _fmt_pct(item.get("tax_percent")),
        ]

        # Rows taller than a page are split; the figures go on the first part.
        while lines:
            room = _lines_that_fit(c)
            if room < len(lines) and (len(lines) <= page_capacity or room == 0):
                _continue_table(c)
                room = _lines_that_fit(c)
            chunk, lines = lines[:room], lines[room:]
            _draw_row(c, cells, chunk)
            cells = ["", None, "", "", "", "", ""]
            if lines:
                _continue_table(c)


def _draw_totals(c: _Canvas, quotation: Mapping[str, Any]) -> None:
    table_right = MARGIN + sum(w for _, w, _ in COLUMNS)
    rows = [("Sub Total", quotation.get("subtotal"))]
    if float(quotation.get("discount_amount") or 0):
        rows.append(("Discount", -float(quotation["discount_amount"])))
    rows.append(("Tax (GST)", quotation.get("tax_amount")))
    rows.append((f"Total ({quotation.get('currency') or ''})".replace(" ()", ""),
                 quotation.get("total_amount")))

    c.ensure(len(rows) * 16 + 20)
    c.y += 16
    for label, value in rows:
        c.text(table_right - 200, c.y, label, bold=True)
        c.text(0, c.y, _fmt_money(value), bold=label.startswith("Total"), right=table_right - 4)
        c.y += 16


def _draw_terms(c: _Canvas, terms: str) -> None:
    if not terms:
        return
    lines = wrap_text(terms, c.width - 2 * MARGIN)
    c.ensure(min(len(lines), 6) * LINE_GAP + 30)
    c.y += 14
    c.text(MARGIN, c.y, "Terms & Conditions:", bold=True, size=10)
    c.y += LINE_GAP + 2
    for line in lines:
        c.ensure(LINE_GAP)
        c.text(MARGIN, c.y, line)
        c.y += LINE_GAP


def _draw_signature(c: _Canvas, settings: Mapping[str, Any]) -> None:
    c.ensure(70)
    c.y += 24
    c.text(MARGIN, c.y, "Yours Truly,")
    c.y += 30
    c.text(MARGIN, c.y, f"On Behalf of {settings.get('company_name') or ''}".strip())
    c.line(MARGIN, c.y + 14, MARGIN + 150, c.y + 14)


def render_quotation_pdf(
    quotation: Mapping[str, Any],
    settings: Mapping[str, Any],
    output_path: Optional[Union[str, Path]] = None,
) -> Union[bytes, Path]:
    """
    Render a quotation (as returned by ``get_quotation``) to PDF.

    Returns the PDF bytes, or the written path when ``output_path`` is given.
    """
    fitz = _fitz()
    doc = fitz.open()
    try:
        c = _Canvas(doc)
        _draw_header(c, quotation, settings)
        _draw_items(c, list(quotation.get("items") or []))
        _draw_totals(c, quotation)
        _draw_terms(c, quotation.get("terms_conditions") or settings.get("quotation_terms") or "")
        _draw_signature(c, settings)

        doc.set_metadata({
            "title": f"Quotation {quotation.get('quotation_number') or ''}".strip(),
            "creator": "QMS",
        })
        if output_path is None:
            data = doc.tobytes()
            logger.info("Rendered %s (%d pages, %d bytes)",
                        quotation.get("quotation_number"), doc.page_count, len(data))
            return data

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        doc.save(str(output_path))
        logger.info("PDF generated: %s (%d pages)", output_path, doc.page_count)
        return output_path
    except Exception:
        logger.exception("PDF generation failed for %s", quotation.get("quotation_number"))
        raise
    finally:
        doc.close()
