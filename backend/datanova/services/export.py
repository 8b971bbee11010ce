"""
Export of the current dataset and rendered charts as downloadable files.

Everything here is a pure function of its inputs: no network access, no
session mutation, and the same input always produces the same bytes.
"""
import io
import json
import base64
import binascii
import logging
import textwrap
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional, Union

from PIL import Image, ImageDraw, ImageFont
from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer
from xml.sax.saxutils import escape

from datanova.core.sanitization import download_stem
from datanova.core.schemas import ChartImage, DatasetArtifact

logger = logging.getLogger(__name__)

BRAND_NAME = "DataNova"

MEDIA_TYPES = {
    "txt": "text/plain; charset=utf-8",
    "json": "application/json",
    "md": "text/markdown; charset=utf-8",
    "png": "image/png",
    "pdf": "application/pdf",
}

FILENAME_SUFFIXES = {
    "txt": "summary",
    "json": "analysis",
    "md": "report",
    "png": "report",
    "pdf": "report",
}

# Report card colors
ACCENT_COLOR = "#F97316"
CARD_COLOR = "#F8FAFC"
HEADING_COLOR = "#1E293B"
MUTED_COLOR = "#64748B"
BODY_COLOR = "#334155"


@dataclass(frozen=True)
class ExportFile:
    filename: str
    content: bytes
    media_type: str


def export_filename(file_name: str, fmt: str) -> str:
    """Download name for an artifact export: sales.csv + md -> sales_report.md."""
    return f"{download_stem(file_name)}_{FILENAME_SUFFIXES[fmt]}.{fmt}"


def _format_timestamp(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M UTC") if value.tzinfo else value.strftime("%Y-%m-%d %H:%M")


def _escape_cell(value: str) -> str:
    return value.replace("|", "\\|").replace("\n", " ")


def to_text(artifact: DatasetArtifact) -> bytes:
    return artifact.summary.encode("utf-8")


def to_json(artifact: DatasetArtifact) -> bytes:
    return json.dumps(artifact.model_dump(mode="json"), indent=2, ensure_ascii=False).encode("utf-8")


def to_markdown(artifact: DatasetArtifact, generated_at: Optional[datetime] = None) -> bytes:
    generated_at = generated_at or artifact.uploaded_at
    lines = [
        f"# {BRAND_NAME} Report: {artifact.file_name}",
        "",
        f"_Generated {_format_timestamp(generated_at)}_",
        "",
        "## Summary",
        "",
        artifact.summary or "No summary available.",
        "",
        "## Key Insights",
        "",
    ]
    if artifact.insights:
        lines.extend(f"- {insight}" for insight in artifact.insights)
    else:
        lines.append("_No insights available._")

    lines.extend([
        "",
        "## Dataset Stats",
        "",
        "| Metric | Value |",
        "| --- | --- |",
        f"| Rows | {artifact.row_count} |",
        f"| Columns | {artifact.column_count} |",
    ])
    for key, value in artifact.stats.items():
        cell = "" if value is None else _escape_cell(str(value))
        lines.append(f"| {_escape_cell(key)} | {cell} |")

    if artifact.resources:
        lines.extend(["", "## Recommended Reading", ""])
        lines.extend(f"- [{resource.title}]({resource.url})" for resource in artifact.resources)

    return ("\n".join(lines) + "\n").encode("utf-8")


def to_png(artifact: DatasetArtifact) -> bytes:
    """
    Render an 800x1000 report card.

    Brand header, rows/columns cards and the word-wrapped summary.
    """
    width, height = 800, 1000
    image = Image.new("RGB", (width, height), "#FFFFFF")
    draw = ImageDraw.Draw(image)
    font = ImageFont.load_default()

    draw.text((50, 60), f"{BRAND_NAME} AI Report", fill=ACCENT_COLOR, font=font)
    draw.text((50, 85), artifact.file_name, fill=MUTED_COLOR, font=font)

    for left, value, label in ((50, artifact.row_count, "Total Rows"), (420, artifact.column_count, "Total Columns")):
        draw.rectangle((left, 120, left + 330, 220), fill=CARD_COLOR)
        draw.text((left + 20, 150), f"{value:,}", fill=HEADING_COLOR, font=font)
        draw.text((left + 20, 185), label, fill=MUTED_COLOR, font=font)

    draw.text((50, 270), "AI Analysis Summary", fill=HEADING_COLOR, font=font)
    y = 300
    for paragraph in (artifact.summary or "No summary available.").splitlines() or [""]:
        for line in textwrap.wrap(paragraph, width=110) or [""]:
            if y > height - 40:
                break
            draw.text((50, y), line, fill=BODY_COLOR, font=font)
            y += 18

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def to_pdf(artifact: DatasetArtifact, generated_at: Optional[datetime] = None) -> bytes:
    """One-page PDF report; invariant mode keeps the bytes reproducible."""
    generated_at = generated_at or artifact.uploaded_at
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=letter,
        topMargin=0.75 * inch,
        bottomMargin=0.75 * inch,
        title=f"{BRAND_NAME} Report",
        invariant=1,
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'ReportTitle',
        parent=styles['Heading1'],
        fontSize=24,
        textColor=HexColor(HEADING_COLOR),
        alignment=TA_CENTER,
        spaceAfter=6,
    )
    meta_style = ParagraphStyle(
        'ReportMeta',
        parent=styles['Normal'],
        fontSize=9,
        textColor=HexColor(MUTED_COLOR),
        alignment=TA_CENTER,
    )
    heading_style = ParagraphStyle(
        'ReportHeading',
        parent=styles['Heading2'],
        textColor=HexColor(ACCENT_COLOR),
        spaceBefore=14,
        spaceAfter=6,
    )
    body_style = ParagraphStyle('ReportBody', parent=styles['BodyText'], fontSize=11, leading=14)

    content = [
        Paragraph(escape(f"{BRAND_NAME} Report: {artifact.file_name}"), title_style),
        Paragraph(
            escape(f"Generated {_format_timestamp(generated_at)} • "
                   f"{artifact.row_count:,} rows • {artifact.column_count:,} columns"),
            meta_style,
        ),
        Spacer(1, 0.25 * inch),
        Paragraph("Summary", heading_style),
    ]
    for paragraph in (artifact.summary or "No summary available.").split("\n\n"):
        content.append(Paragraph(escape(paragraph).replace("\n", "<br/>"), body_style))

    if artifact.insights:
        content.append(Paragraph("Key Insights", heading_style))
        for insight in artifact.insights:
            content.append(Paragraph(escape(insight), body_style, bulletText="•"))

    if artifact.stats:
        content.append(Paragraph("Dataset Stats", heading_style))
        for key, value in artifact.stats.items():
            content.append(Paragraph(f"<b>{escape(key)}</b>: {escape(str(value))}", body_style))

    doc.build(content)
    return buffer.getvalue()


SERIALIZERS: Dict[str, Callable[..., bytes]] = {
    "txt": lambda artifact, generated_at: to_text(artifact),
    "json": lambda artifact, generated_at: to_json(artifact),
    "md": to_markdown,
    "png": lambda artifact, generated_at: to_png(artifact),
    "pdf": to_pdf,
}

EXPORT_FORMATS = tuple(SERIALIZERS)


def serialize(artifact: DatasetArtifact, fmt: str, generated_at: Optional[datetime] = None) -> bytes:
    """Serialize the artifact to one of EXPORT_FORMATS."""
    serializer = SERIALIZERS.get(fmt)
    if serializer is None:
        raise ValueError(f"Unsupported export format '{fmt}'. Choose one of: {', '.join(EXPORT_FORMATS)}")
    return serializer(artifact, generated_at)


def export_artifact(artifact: DatasetArtifact, fmt: str, generated_at: Optional[datetime] = None) -> ExportFile:
    return ExportFile(
        filename=export_filename(artifact.file_name, fmt),
        content=serialize(artifact, fmt, generated_at),
        media_type=MEDIA_TYPES[fmt],
    )


def export_chart_image(image: Union[ChartImage, str, bytes], file_name: str, chart_type: str = "chart") -> ExportFile:
    """
    Turn an already rendered chart into a named PNG download.

    Accepts raw image bytes or a data: URL. Remote URLs are rejected: the
    image is never fetched or re-rendered here.
    """
    if isinstance(image, ChartImage):
        chart_type = image.chart_type
        image = image.ref

    if isinstance(image, bytes):
        content = image
    else:
        if not image.startswith("data:"):
            raise ValueError("Only images already in hand (data: URLs or bytes) can be exported.")
        header, _, encoded = image.partition(",")
        if ";base64" not in header:
            raise ValueError("Chart data URL is not base64-encoded.")
        try:
            content = base64.b64decode(encoded, validate=True)
        except binascii.Error as e:
            raise ValueError("Chart data URL has invalid base64 content.") from e

    if not content:
        raise ValueError("Chart image is empty.")

    return ExportFile(
        filename=f"{download_stem(file_name)}_{chart_type}_chart.png",
        content=content,
        media_type="image/png",
    )
