from __future__ import annotations
from typing import Any, Mapping
import logging

from fpdf import FPDF

from invoice_roi.errors import RenderError
from invoice_roi.simulation.engine import SimulationResult

logger = logging.getLogger(__name__)

REPORT_TITLE = "Invoicing ROI Report"
REPORT_FILENAME = "roi_report.pdf"
REPORT_MIME = "application/pdf"

# (label, SimulationResult attribute)
HEADLINE_FIELDS = [
    ("Monthly Savings", "monthly_savings"),
    ("Payback (months)", "payback_months"),
    ("ROI (%)", "roi_percentage"),
    ("Cumulative Savings", "cumulative_savings"),
]

_MARGIN_MM = 17  # ~48pt


def _pdf_safe(text: Any) -> str:
    """Core fonts are latin-1 only; swap the usual typographic characters, replace the rest."""
    s = str(text)
    s = s.replace("–", "-").replace("—", "-")
    s = s.replace("‘", "'").replace("’", "'")
    s = s.replace("“", '"').replace("”", '"')
    return s.encode("latin-1", "replace").decode("latin-1")


def fmt_number(x: float) -> str:
    return f"{x:,.2f}"


def _line(pdf: FPDF, text: str, h: float = 6) -> None:
    pdf.multi_cell(0, h, _pdf_safe(text), new_x="LMARGIN", new_y="NEXT")


def _section(pdf: FPDF, title: str) -> None:
    pdf.set_font("Helvetica", "U", 12)
    _line(pdf, title, h=8)
    pdf.set_font("Helvetica", "", 11)


def render_pdf(email: str, inputs: Mapping[str, Any], result: SimulationResult, compress: bool = True) -> bytes:
    """Render the report for ``email``: raw inputs as given, headline results to 2dp.

    ``compress=False`` leaves the page content stream readable.
    """
    try:
        pdf = FPDF(format="A4")
        pdf.set_compression(compress)
        pdf.set_margins(_MARGIN_MM, _MARGIN_MM, _MARGIN_MM)
        pdf.set_auto_page_break(auto=True, margin=_MARGIN_MM)
        pdf.add_page()

        pdf.set_font("Helvetica", "B", 18)
        _line(pdf, REPORT_TITLE, h=10)
        pdf.ln(2)
        pdf.set_font("Helvetica", "", 10)
        pdf.set_text_color(68, 68, 68)
        _line(pdf, f"Generated for: {email}")
        pdf.set_text_color(0, 0, 0)
        pdf.ln(4)

        _section(pdf, "Inputs:")
        for k, v in inputs.items():
            _line(pdf, f"{k}: {v}")
        pdf.ln(4)

        _section(pdf, "Results:")
        for label, attr in HEADLINE_FIELDS:
            _line(pdf, f"{label}: {fmt_number(getattr(result, attr))}")

        return bytes(pdf.output())
    except Exception as e:
        logger.exception("PDF rendering failed")
        raise RenderError(str(e)) from e
