"""
PDF receipt rendering.

Layout:
1. Header: title, merchant name, TIN, greeting
2. One line per cart item: name, unit price x quantity
3. Summary: item count, total, payment method
4. Footer: thank-you lines

Each receipt is written to its own file named after the transaction id.
"""
import os
import tempfile
from pathlib import Path
from typing import Optional, Sequence

import structlog
from fpdf import FPDF
from fpdf.enums import XPos, YPos
from fpdf.errors import FPDFException

from marketplace.config import Settings, get_settings
from marketplace.core.exceptions import RenderError
from marketplace.database.models import Product

logger = structlog.get_logger(__name__)

# Quantity is not tracked per cart line; every line is one unit.
PLACEHOLDER_QUANTITY = 1.0
PAYMENT_METHOD_LABEL = "CARD"

PAGE_LEFT = 10
PAGE_RIGHT = 200


class ReceiptRenderer:
    """Render cart contents to a paginated PDF receipt."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.output_dir = Path(self.settings.receipts_dir)

    def receipt_path(self, receipt_id: str) -> Path:
        """Path of the receipt for a given transaction id."""
        return self.output_dir / f"receipt-{receipt_id}.pdf"

    def _rule(self, pdf: FPDF) -> None:
        pdf.line(PAGE_LEFT, pdf.get_y(), PAGE_RIGHT, pdf.get_y())

    def _summary_row(self, pdf: FPDF, label: str, value: str) -> None:
        pdf.cell(95, 10, label)
        pdf.cell(0, 10, value, align="R", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    def build(self, items: Sequence[Product], total: float, item_count: int) -> FPDF:
        """
        Lay out the receipt document.

        Args:
            items: Cart items in insertion order
            total: Transaction total
            item_count: Number of cart lines

        Returns:
            FPDF: Document ready to be written
        """
        pdf = FPDF(orientation="P", unit="mm", format="A4")
        pdf.set_auto_page_break(auto=True, margin=15)
        pdf.add_page()

        pdf.set_font("Helvetica", "B", 16)
        pdf.cell(0, 10, "START OF FISCAL RECEIPT")
        pdf.ln(12)

        pdf.set_font("Helvetica", "", 12)
        pdf.cell(0, 10, self.settings.merchant_name)
        pdf.ln(8)
        pdf.cell(0, 10, f"TIN: {self.settings.merchant_tin}")
        pdf.ln(8)
        pdf.cell(0, 10, "Welcome to our shop!")
        pdf.ln(12)

        self._rule(pdf)
        pdf.ln(5)

        for item in items:
            pdf.cell(100, 10, item.name)
            pdf.cell(40, 10, f"{item.price:.2f} x {PLACEHOLDER_QUANTITY:.1f}")
            pdf.ln(8)

        pdf.ln(5)
        self._rule(pdf)

        self._summary_row(pdf, "NUMBER OF ITEMS", f"{item_count}")
        self._summary_row(pdf, "TOTAL", f"{total:.2f}")
        self._summary_row(pdf, PAYMENT_METHOD_LABEL, f"{total:.2f}")

        self._rule(pdf)
        pdf.ln(5)

        pdf.cell(0, 10, "THANK YOU", align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.cell(0, 10, "COME BACK AGAIN", align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

        self._rule(pdf)
        pdf.ln(5)
        return pdf

    def render(
        self,
        items: Sequence[Product],
        total: float,
        item_count: int,
        receipt_id: str,
    ) -> Path:
        """
        Render and write a receipt.

        The file is written next to its final location and renamed into
        place, so readers never observe a partial receipt.

        Args:
            items: Cart items in insertion order
            total: Transaction total
            item_count: Number of cart lines
            receipt_id: Transaction id the receipt belongs to

        Returns:
            Path: Location of the written receipt

        Raises:
            RenderError: If layout or writing fails
        """
        target = self.receipt_path(receipt_id)
        tmp_name: Optional[str] = None
        try:
            pdf = self.build(items, total, item_count)
            self.output_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{target.name}.", suffix=".tmp", dir=self.output_dir
            )
            with os.fdopen(fd, "wb") as fh:
                fh.write(bytes(pdf.output()))
            os.replace(tmp_name, target)
            tmp_name = None
        except (FPDFException, UnicodeEncodeError, OSError) as e:
            raise RenderError(
                f"Failed to render receipt {receipt_id}: {e}", receipt_id=receipt_id
            ) from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

        logger.info(
            "receipt_rendered",
            receipt_id=receipt_id,
            path=str(target),
            item_count=item_count,
        )
        return target
