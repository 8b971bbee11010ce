"""
Input sanitization utilities for user-provided data.
"""
import re
from pathlib import PurePath
from typing import Optional


def sanitize_filename(filename: Optional[str], max_length: int = 255) -> str:
    """
    Sanitize filename to prevent path traversal and log injection.

    Args:
        filename: Original filename
        max_length: Maximum length of sanitized filename

    Returns:
        Sanitized filename safe for logging and storage
    """
    if not filename:
        return "unknown"

    # Remove path components
    filename = filename.split('/')[-1].split('\\')[-1]

    # Remove control characters and newlines
    filename = re.sub(r'[\x00-\x1f\x7f-\x9f]', '', filename)

    # Remove leading/trailing dots and spaces
    filename = filename.strip('. ')

    # Limit length
    if len(filename) > max_length:
        filename = filename[:max_length]

    return filename or "unknown"


def sanitize_for_logging(value: Optional[str], max_length: int = 500) -> str:
    """
    Sanitize value for safe logging (prevents log injection).

    Args:
        value: Value to sanitize
        max_length: Maximum length

    Returns:
        Sanitized value safe for logging
    """
    if not value:
        return ""

    # Remove newlines and carriage returns
    value = re.sub(r'[\r\n]', ' ', value)

    # Remove other control characters
    value = re.sub(r'[\x00-\x1f\x7f-\x9f]', '', value)

    # Limit length
    if len(value) > max_length:
        value = value[:max_length] + "..."

    return value


def download_stem(filename: Optional[str]) -> str:
    """
    Stem of a source file name, reduced to characters safe in a download name.

    "Q3 sales (final).csv" -> "Q3_sales_final"
    """
    if not filename:
        return "dataset"
    stem = PurePath(sanitize_filename(filename)).stem
    stem = re.sub(r'[^A-Za-z0-9_-]+', '_', stem).strip('_')
    return stem or "dataset"
