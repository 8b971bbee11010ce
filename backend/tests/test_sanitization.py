"""
Tests for input sanitization utilities.
"""
import pytest
from datanova.core.sanitization import download_stem, sanitize_filename, sanitize_for_logging


@pytest.mark.unit
def test_sanitize_filename():
    """Test filename sanitization."""
    assert sanitize_filename("sales.csv") == "sales.csv"

    # Path traversal attempt
    assert sanitize_filename("../../../etc/passwd") == "passwd"
    assert sanitize_filename("C:\\Users\\me\\sales.csv") == "sales.csv"

    # Newlines and control characters
    assert sanitize_filename("test\nfile.csv") == "testfile.csv"
    assert "\x00" not in sanitize_filename("test\x00file.csv")

    assert len(sanitize_filename("a" * 300)) == 255

    assert sanitize_filename("") == "unknown"
    assert sanitize_filename(None) == "unknown"


@pytest.mark.unit
def test_sanitize_for_logging():
    """Test logging sanitization."""
    assert "\n" not in sanitize_for_logging("test\nlog")
    assert "\r" not in sanitize_for_logging("test\rlog")
    assert "\x00" not in sanitize_for_logging("test\x00log")

    sanitized = sanitize_for_logging("a" * 600)
    assert len(sanitized) <= 503
    assert sanitized.endswith("...")

    assert sanitize_for_logging(None) == ""


@pytest.mark.unit
@pytest.mark.parametrize("filename,expected", [
    ("sales.csv", "sales"),
    ("Q3 sales (final).csv", "Q3_sales_final"),
    ("../reports/2024-budget.csv", "2024-budget"),
    ("", "dataset"),
    ("(((.csv", "dataset"),
])
def test_download_stem(filename, expected):
    assert download_stem(filename) == expected
