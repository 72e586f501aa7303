"""
System reports rendered as PDF for the superadmin dashboard.

Report types: appointments (alias: bookings), users, services.
"""

import io
import logging
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import Appointment, Service, Stylist, User
from salon.errors import ValidationError
from shared.config import get_settings

logger = logging.getLogger(__name__)

REPORT_TYPES = ("appointments", "bookings", "users", "services")


class Report(BaseModel):
    report_type: str
    title: str
    headers: list[str]
    rows: list[list[str]]

    @property
    def filename(self) -> str:
        return f"{self.report_type}_report.pdf"


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


def normalize_report_type(report_type: str) -> str:
    normalized = (report_type or "").strip().lower()
    if normalized not in REPORT_TYPES:
        raise ValidationError("Invalid report type", code="INVALID_REPORT_TYPE")
    return normalized


async def load_report(session: AsyncSession, report_type: str) -> Report:
    """
    Query the rows for a report type.

    Raises:
        ValidationError: Unknown report type
    """
    report_type = normalize_report_type(report_type)

    if report_type in ("appointments", "bookings"):
        result = await session.execute(
            select(
                User.name,
                Appointment.service,
                Stylist.name,
                Appointment.stylist,
                Appointment.date,
                Appointment.time,
                Appointment.status,
            )
            .select_from(Appointment)
            .outerjoin(User, Appointment.user_id == User.id)
            .outerjoin(Stylist, Appointment.stylist_id == Stylist.id)
            .order_by(Appointment.date.desc(), Appointment.time.desc())
        )
        rows = [
            [
                str(i),
                _cell(customer),
                _cell(service),
                _cell(stylist_name or stylist_text),
                _cell(day.isoformat() if day else None),
                _cell(at.strftime("%H:%M") if at else None),
                _cell(status),
            ]
            for i, (customer, service, stylist_name, stylist_text, day, at, status) in enumerate(
                result.all(), start=1
            )
        ]
        return Report(
            report_type=report_type,
            title="Appointments Report",
            headers=["#", "Customer", "Service", "Stylist", "Date", "Time", "Status"],
            rows=rows,
        )

    if report_type == "users":
        result = await session.execute(select(User).order_by(User.created_at.desc()))
        rows = [
            [
                str(i),
                user.name,
                user.email,
                user.phone,
                user.role.value,
                user.created_at.strftime("%Y-%m-%d") if user.created_at else "",
            ]
            for i, user in enumerate(result.scalars().all(), start=1)
        ]
        return Report(
            report_type=report_type,
            title="Users Report",
            headers=["#", "Name", "Email", "Phone", "Role", "Joined"],
            rows=rows,
        )

    result = await session.execute(select(Service).order_by(Service.id.desc()))
    rows = [
        [
            str(i),
            service.name,
            f"{service.price:.2f}" if service.price is not None else "",
            _cell(service.duration),
            _cell(service.status),
            _cell(service.description),
        ]
        for i, service in enumerate(result.scalars().all(), start=1)
    ]
    return Report(
        report_type=report_type,
        title="Services Report",
        headers=["#", "Name", "Price", "Duration (min)", "Status", "Description"],
        rows=rows,
    )


class ReportPDFGenerator:
    """Render a Report as a branded A4 table document."""

    def __init__(self, report: Report, salon_name: Optional[str] = None):
        self.report = report
        self.salon_name = salon_name or get_settings().SALON_NAME

        self.page_width, self.page_height = A4
        self.margin = 0.7 * inch
        self.content_width = self.page_width - (2 * self.margin)

        self.brand_color = colors.HexColor("#db2777")
        self.light_gray = colors.HexColor("#f1f5f9")

    def _column_widths(self) -> list[float]:
        count = len(self.report.headers)
        index_width = 0.4 * inch
        rest = (self.content_width - index_width) / (count - 1)
        return [index_width] + [rest] * (count - 1)

    def generate(self, generated_at: Optional[datetime] = None) -> bytes:
        """Generate the PDF and return its bytes."""
        generated_at = generated_at or datetime.now(get_settings().salon_timezone)
        logger.info(f"Generating {self.report.report_type} report ({len(self.report.rows)} rows)")

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=self.margin,
            leftMargin=self.margin,
            topMargin=self.margin,
            bottomMargin=self.margin,
            title=f"{self.salon_name} - {self.report.title}",
        )

        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            "ReportTitle",
            parent=styles["Heading1"],
            fontSize=18,
            alignment=1,
            textColor=self.brand_color,
            spaceAfter=4,
        )
        subtitle_style = ParagraphStyle(
            "ReportSubtitle", parent=styles["Normal"], fontSize=12, alignment=1, spaceAfter=4
        )
        meta_style = ParagraphStyle("ReportMeta", parent=styles["Normal"], fontSize=9, alignment=2)
        cell_style = ParagraphStyle("ReportCell", parent=styles["Normal"], fontSize=8, leading=10)

        story = [
            Paragraph(self.salon_name, title_style),
            Paragraph(self.report.title, subtitle_style),
            Paragraph(f"Generated: {generated_at.strftime('%Y-%m-%d %I:%M %p')}", meta_style),
            Spacer(1, 0.2 * inch),
        ]

        data = [self.report.headers] + [
            [Paragraph(cell, cell_style) for cell in row] for row in self.report.rows
        ]
        table = Table(data, colWidths=self._column_widths(), repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), self.brand_color),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, 0), 9),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, self.light_gray]),
                    ("LINEBELOW", (0, 0), (-1, 0), 1, self.brand_color),
                ]
            )
        )
        story.append(table)
        story.append(Spacer(1, 0.3 * inch))
        story.append(Paragraph("Generated by Super Admin", styles["Normal"]))

        doc.build(story)
        return buffer.getvalue()


async def build_report_pdf(session: AsyncSession, report_type: str) -> tuple[str, bytes]:
    """Load and render a report. Returns (filename, pdf_bytes)."""
    report = await load_report(session, report_type)
    return report.filename, ReportPDFGenerator(report).generate()
