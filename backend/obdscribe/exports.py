"""CSV and PDF renderings of reports."""

import csv
import io
import re
from datetime import datetime
from typing import Iterable, Optional

from fpdf import FPDF
from fpdf.enums import MethodReturnValue, XPos, YPos

from .models import Report


CSV_COLUMNS = (
    "id",
    "createdAt",
    "vehicleYear",
    "vehicleMake",
    "vehicleModel",
    "vehicleTrim",
    "mileage",
    "codesRaw",
    "complaint",
    "status",
)

PDF_FONT = "Helvetica"
PDF_FONT_SIZE = 10
PDF_LINE_HEIGHT = 14
PDF_MARGIN = 50
PDF_SUMMARY_LIMIT = 400

_UNICODE_HYPHENS = re.compile("[\u2010-\u2015]")
_NON_PRINTABLE_ASCII = re.compile(r"[^\x20-\x7E\n]")


def _csv_value(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def reports_to_csv(reports: Iterable[Report]) -> str:
    """Serialize reports with every field double-quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for report in reports:
        writer.writerow(
            [
                _csv_value(report.id),
                _csv_value(report.created_at),
                _csv_value(report.vehicle_year),
                _csv_value(report.vehicle_make),
                _csv_value(report.vehicle_model),
                _csv_value(report.vehicle_trim),
                _csv_value(report.mileage),
                _csv_value(report.codes_raw),
                _csv_value(report.complaint),
                _csv_value(report.status),
            ]
        )
    return buffer.getvalue()


def sanitize_pdf_text(text: Optional[str]) -> str:
    """Reduce text to what the built-in Helvetica font can encode."""
    if not text:
        return ""
    return _NON_PRINTABLE_ASCII.sub("", _UNICODE_HYPHENS.sub("-", text))


def _vehicle_label(report: Report) -> str:
    parts = (report.vehicle_year, report.vehicle_make, report.vehicle_model, report.vehicle_trim)
    label = " ".join(str(part) for part in parts if part)
    return label or "(not specified)"


class _ReportPage:
    """Writes labelled lines top to bottom on a single page.

    Writing stops at the bottom margin; anything after that is dropped.
    """

    def __init__(self) -> None:
        self.pdf = FPDF(orientation="P", unit="pt", format="letter")
        self.pdf.set_auto_page_break(auto=False)
        self.pdf.set_margins(PDF_MARGIN, PDF_MARGIN, PDF_MARGIN)
        self.pdf.add_page()

    def has_room(self) -> bool:
        return self.pdf.get_y() + PDF_LINE_HEIGHT <= self.pdf.h - PDF_MARGIN

    def line(self, text: str = "", *, bold: bool = False) -> None:
        safe_text = sanitize_pdf_text(text)
        if not safe_text:
            if self.has_room():
                self.pdf.ln(PDF_LINE_HEIGHT)
            return
        self.pdf.set_font(PDF_FONT, style="B" if bold else "", size=PDF_FONT_SIZE)
        wrapped = self.pdf.multi_cell(
            0, PDF_LINE_HEIGHT, safe_text, dry_run=True, output=MethodReturnValue.LINES
        )
        for wrapped_line in wrapped:
            if not self.has_room():
                return
            self.pdf.cell(
                0, PDF_LINE_HEIGHT, wrapped_line, new_x=XPos.LMARGIN, new_y=YPos.NEXT
            )

    def section(self, label: str, body: str) -> None:
        self.line(label, bold=True)
        self.line(body)
        self.line()

    def render(self) -> bytes:
        return bytes(self.pdf.output())


def render_report_pdf(report: Report) -> bytes:
    page = _ReportPage()
    page.line("OBDscribe Report", bold=True)
    page.line()

    page.line(f"Vehicle: {_vehicle_label(report)}")
    if report.mileage is not None:
        page.line(f"Mileage: {report.mileage}")
    created = report.created_at.strftime("%Y-%m-%d %H:%M") if report.created_at else ""
    page.line(f"Created: {created}")
    page.line()

    page.section("Complaint:", (report.complaint or "(none)")[:PDF_SUMMARY_LIMIT])
    if report.notes:
        page.section("Notes:", report.notes[:PDF_SUMMARY_LIMIT])
    if report.codes_raw:
        page.section("OBD Codes:", report.codes_raw)
    if report.tech_view:
        page.section("Tech View (summary):", report.tech_view[:PDF_SUMMARY_LIMIT])
    if report.customer_view:
        page.line("Customer View (summary):", bold=True)
        page.line(report.customer_view[:PDF_SUMMARY_LIMIT])
    return page.render()
