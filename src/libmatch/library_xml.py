"""Library metadata files (``library.xml``).

Expected layout::

    <library>
        <name>OkHttp</name>
        <category>Utilities</category>
        <version>3.8.0</version>
        <releasedate>2017-05-29</releasedate>
        <comment>optional</comment>
    </library>
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from datetime import date
from pathlib import Path
from typing import get_args

from pydantic import ValidationError

from libmatch.engine.errors import LibMatchError
from libmatch.schema import LibraryCategory, LibraryDescription

_CATEGORIES: dict[str, str] = {c.lower(): c for c in get_args(LibraryCategory)}
_CATEGORY_ALIASES: dict[str, str] = {
    "ads": "Advertising",
    "tracker": "Analytics",
    "social-media": "SocialMedia",
    "social media": "SocialMedia",
    "utility": "Utilities",
}


class LibraryDescriptionError(LibMatchError):
    """The library metadata file is unreadable or incomplete."""


def _text(root: ET.Element, tag: str) -> str | None:
    value = root.findtext(tag)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _category(raw: str | None) -> str:
    if raw is None:
        return "Unknown"
    key = raw.strip().lower()
    return _CATEGORIES.get(key) or _CATEGORY_ALIASES.get(key) or "Unknown"


def _release_date(raw: str | None, path: str) -> date | None:
    if raw is None:
        return None
    # Dates appear as 2017-05-29 or 29.05.2017
    for sep, order in (("-", (0, 1, 2)), (".", (2, 1, 0)), ("/", (2, 1, 0))):
        parts = raw.split(sep)
        if len(parts) == 3 and all(p.isdigit() for p in parts):
            y, m, d = (int(parts[i]) for i in order)
            try:
                return date(y, m, d)
            except ValueError:
                break
    raise LibraryDescriptionError(f"{path}: invalid release date {raw!r}")


def parse_library_xml(text: str, source: str = "<string>") -> LibraryDescription:
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise LibraryDescriptionError(f"{source}: malformed XML: {exc}") from exc

    if root.tag != "library":
        raise LibraryDescriptionError(f"{source}: root element must be <library>, got <{root.tag}>")

    name = _text(root, "name")
    version = _text(root, "version")
    if name is None or version is None:
        raise LibraryDescriptionError(f"{source}: <name> and <version> are required")

    try:
        return LibraryDescription(
            name=name,
            version=version,
            category=_category(_text(root, "category")),  # type: ignore[arg-type]
            release_date=_release_date(_text(root, "releasedate"), source),
            comment=_text(root, "comment"),
        )
    except ValidationError as exc:
        raise LibraryDescriptionError(f"{source}: {exc}") from exc


def read_library_xml(path: str | Path) -> LibraryDescription:
    """Read a LibraryDescription from a ``library.xml`` file."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise LibraryDescriptionError(f"cannot read {path}: {exc}") from exc
    return parse_library_xml(text, str(path))
