"""Utility helpers for the Webworm service."""

from __future__ import annotations

import re

NUMBER_RE = re.compile(r"^\s*\+?(\d+)\s*$")


def parse_positive_int(value: object, *, field: str = "value") -> int:
    """Parse user input such as ``" 12 "`` into a number of at least 1."""

    if isinstance(value, bool):
        raise ValueError(f"{field} must be a positive number")
    if isinstance(value, int):
        number = value
    else:
        match = NUMBER_RE.match(str(value if value is not None else ""))
        if not match:
            raise ValueError(f"{field} must be a positive number")
        number = int(match.group(1))
    if number < 1:
        raise ValueError(f"{field} must be a positive number")
    return number


def build_image_url(path: str | None, base_url: str) -> str | None:
    """Join a TMDB image path onto the configured image base URL."""

    if not path:
        return None
    if path.startswith("http"):
        return path
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"
