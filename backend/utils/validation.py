"""
validation.py — Server-side input validation for post routes.
"""

import re

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
POST_STATES = ("draft", "published")


class ValidationError(ValueError):
    status = 400


def _is_blank(value) -> bool:
    return not isinstance(value, str) or not value.strip()


def validate_post_data(data: dict, require_slug: bool = False) -> list:
    """Return a list of error messages; empty when the payload is valid."""
    errors = []

    if require_slug and _is_blank(data.get("slug")):
        errors.append("Slug is required")
    if _is_blank(data.get("title")):
        errors.append("Title is required")
    if _is_blank(data.get("content")):
        errors.append("Content is required")
    if _is_blank(data.get("summary")):
        errors.append("Summary is required")

    if data.get("state") not in POST_STATES:
        errors.append('State must be "draft" or "published"')

    slug = data.get("slug")
    if slug is not None and (not isinstance(slug, str) or not SLUG_PATTERN.match(slug)):
        errors.append("Slug must contain only lowercase letters, numbers, and hyphens")

    locale = data.get("locale")
    if locale is not None and (not isinstance(locale, str) or not 2 <= len(locale) <= 5):
        errors.append("Locale must be a 2-5 character code")

    return errors


def parse_id(value):
    """Parse a numeric path id. None if missing or not an integer."""
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_page_args(args, default_size: int = 10):
    """(page, size) from query args; page is 0-based, size clamped to 1..100."""
    try:
        page = max(0, int(args.get("page", 0)))
        size = min(max(1, int(args.get("size", default_size))), 100)
    except (TypeError, ValueError):
        raise ValidationError("Page and size must be integers")
    return page, size
