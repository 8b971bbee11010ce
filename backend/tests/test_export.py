"""
Tests for artifact and chart exports.
"""
import io
import json
import base64
from datetime import datetime, timezone
import pytest
from PIL import Image
from conftest import PNG_BASE64, UPLOADED_AT, analysis_payload
from datanova.core.schemas import ChartImage, DatasetArtifact
from datanova.services.export import (
    EXPORT_FORMATS,
    export_artifact,
    export_chart_image,
    export_filename,
    serialize,
)
from datanova.services.normalize import normalize_artifact

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


@pytest.fixture
def artifact():
    return normalize_artifact(analysis_payload(), "Q3 sales (final).csv", UPLOADED_AT)


@pytest.mark.unit
def test_formats():
    assert set(EXPORT_FORMATS) == {"txt", "json", "md", "png", "pdf"}


@pytest.mark.unit
def test_unknown_format(artifact):
    with pytest.raises(ValueError):
        serialize(artifact, "docx")


@pytest.mark.unit
@pytest.mark.parametrize("fmt,expected", [
    ("txt", "Q3_sales_final_summary.txt"),
    ("json", "Q3_sales_final_analysis.json"),
    ("md", "Q3_sales_final_report.md"),
    ("png", "Q3_sales_final_report.png"),
    ("pdf", "Q3_sales_final_report.pdf"),
])
def test_export_filenames(fmt, expected):
    assert export_filename("Q3 sales (final).csv", fmt) == expected


@pytest.mark.unit
def test_text_is_the_summary(artifact):
    assert serialize(artifact, "txt").decode("utf-8") == artifact.summary


@pytest.mark.unit
def test_json_round_trips(artifact):
    exported = export_artifact(artifact, "json")

    assert exported.media_type == "application/json"
    assert DatasetArtifact.model_validate_json(exported.content) == artifact
    assert json.loads(exported.content)["file_name"] == "Q3 sales (final).csv"


@pytest.mark.unit
def test_json_keeps_unicode(artifact):
    artifact.summary = "Umsatz stieg um 12 % in München"
    assert "München".encode("utf-8") in serialize(artifact, "json")


@pytest.mark.unit
def test_markdown_report(artifact):
    text = serialize(artifact, "md").decode("utf-8")

    assert text.startswith("# DataNova Report: Q3 sales (final).csv\n")
    assert "_Generated 2025-03-14 09:30 UTC_" in text
    assert "## Summary" in text
    assert artifact.summary in text
    assert "- North is the top region" in text
    assert "| Rows | 5000 |" in text
    assert "| total_sales | 1523400.25 |" in text
    assert "- [Reading sales trends](https://example.com/trends)" in text


@pytest.mark.unit
def test_markdown_uses_generation_time(artifact):
    generated = datetime(2025, 4, 1, 8, 0, tzinfo=timezone.utc)
    assert "_Generated 2025-04-01 08:00 UTC_" in serialize(artifact, "md", generated).decode("utf-8")


@pytest.mark.unit
def test_markdown_escapes_table_cells(artifact):
    artifact.stats = {"a|b": "x|y"}
    assert "| a\\|b | x\\|y |" in serialize(artifact, "md").decode("utf-8")


@pytest.mark.unit
def test_markdown_without_narrative():
    bare = DatasetArtifact(file_name="empty.csv", uploaded_at=UPLOADED_AT)
    text = serialize(bare, "md").decode("utf-8")

    assert "No summary available." in text
    assert "_No insights available._" in text
    assert "Recommended Reading" not in text


@pytest.mark.unit
def test_png_report(artifact):
    content = serialize(artifact, "png")

    assert content.startswith(PNG_SIGNATURE)
    with Image.open(io.BytesIO(content)) as image:
        assert image.size == (800, 1000)


@pytest.mark.unit
def test_png_is_deterministic(artifact):
    assert serialize(artifact, "png") == serialize(artifact, "png")


@pytest.mark.unit
def test_pdf_report(artifact):
    exported = export_artifact(artifact, "pdf")

    assert exported.content.startswith(b"%PDF")
    assert exported.media_type == "application/pdf"


@pytest.mark.unit
def test_pdf_is_deterministic(artifact):
    assert serialize(artifact, "pdf") == serialize(artifact, "pdf")


@pytest.mark.unit
def test_pdf_handles_markup_characters(artifact):
    artifact.summary = "Revenue <up> & costs <down>"
    artifact.insights = ["A & B"]
    assert serialize(artifact, "pdf").startswith(b"%PDF")


@pytest.mark.unit
def test_export_does_not_mutate_artifact(artifact):
    before = artifact.model_copy(deep=True)
    for fmt in EXPORT_FORMATS:
        serialize(artifact, fmt)
    assert artifact == before


@pytest.mark.unit
def test_chart_image_from_data_url():
    image = ChartImage(chart_type="bar", ref=f"data:image/png;base64,{PNG_BASE64}")

    exported = export_chart_image(image, "sales.csv")

    assert exported.filename == "sales_bar_chart.png"
    assert exported.media_type == "image/png"
    assert exported.content == base64.b64decode(PNG_BASE64)
    assert exported.content.startswith(PNG_SIGNATURE)


@pytest.mark.unit
def test_chart_image_from_bytes():
    raw = base64.b64decode(PNG_BASE64)
    exported = export_chart_image(raw, "sales.csv", chart_type="pie")

    assert exported.filename == "sales_pie_chart.png"
    assert exported.content == raw


@pytest.mark.unit
@pytest.mark.parametrize("ref", [
    "https://charts.example.com/abc.png",
    "data:image/png,notbase64",
    "data:image/png;base64,@@@not-base64@@@",
    "data:image/png;base64,",
])
def test_chart_image_rejects_unusable_refs(ref):
    with pytest.raises(ValueError):
        export_chart_image(ref, "sales.csv")
