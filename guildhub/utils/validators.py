"""Validation and normalization helpers for provider-supplied fields."""

from __future__ import annotations

import re

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
ERROR_CODE_RE = re.compile(r"^[A-Za-z0-9_]+$")


def normalize_email(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip().lower()
    return value or None


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value))


def is_safe_redirect_path(value: str | None) -> bool:
    """Local absolute path only; rejects scheme-relative and backslash tricks."""
    if not value or not value.startswith("/"):
        return False
    return not value.startswith("//") and "\\" not in value


def humanize(code: str) -> str:
    """``access_denied`` -> ``Access denied``."""
    text = code
    if text.endswith("_id"):
        text = text[:-3]
    text = text.replace("_", " ").strip().lower()
    return text[:1].upper() + text[1:]


def sanitize_error_code(code: str | None, default: str = "unknown_error") -> str:
    if not code or not ERROR_CODE_RE.match(code):
        return default
    return code
