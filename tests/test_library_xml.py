"""Tests for library.xml parsing."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

import pytest

from libmatch.library_xml import LibraryDescriptionError, parse_library_xml, read_library_xml

if TYPE_CHECKING:
    from pathlib import Path

    from conftest import XmlWriter


class TestParse:
    def test_full(self) -> None:
        desc = parse_library_xml(
            "<library><name>OkHttp</name><category>Utilities</category>"
            "<version>3.8.0</version><releasedate>2017-05-29</releasedate>"
            "<comment> HTTP client </comment></library>"
        )
        assert desc.name == "OkHttp"
        assert desc.version == "3.8.0"
        assert desc.category == "Utilities"
        assert desc.release_date == date(2017, 5, 29)
        assert desc.comment == "HTTP client"

    def test_minimal(self) -> None:
        desc = parse_library_xml("<library><name>x</name><version>1</version></library>")
        assert desc.category == "Unknown"
        assert desc.release_date is None
        assert desc.comment is None

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("advertising", "Advertising"), ("Social-Media", "SocialMedia"), ("tracker", "Analytics"), ("???", "Unknown")],
    )
    def test_category_normalized(self, raw: str, expected: str) -> None:
        desc = parse_library_xml(f"<library><name>x</name><version>1</version><category>{raw}</category></library>")
        assert desc.category == expected

    def test_dotted_date(self) -> None:
        desc = parse_library_xml(
            "<library><name>x</name><version>1</version><releasedate>29.05.2017</releasedate></library>"
        )
        assert desc.release_date == date(2017, 5, 29)


class TestErrors:
    @pytest.mark.parametrize(
        "text",
        [
            "<library><name>x</name>",
            "<lib><name>x</name><version>1</version></lib>",
            "<library><name>x</name></library>",
            "<library><name>x</name><version>1</version><releasedate>soon</releasedate></library>",
            "<library><name>x</name><version>1</version><releasedate>2017-13-40</releasedate></library>",
        ],
    )
    def test_invalid(self, text: str) -> None:
        with pytest.raises(LibraryDescriptionError):
            parse_library_xml(text)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(LibraryDescriptionError, match="cannot read"):
            read_library_xml(tmp_path / "library.xml")


def test_read_file(write_library_xml: XmlWriter) -> None:
    desc = read_library_xml(write_library_xml(name="Gson", version="2.8.0", category="Utilities"))
    assert desc.label == "Gson 2.8.0"
