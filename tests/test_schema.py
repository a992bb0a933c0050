"""Tests for the Pydantic models."""

from __future__ import annotations

import json
from datetime import date

import pytest
from pydantic import ValidationError

from libmatch.schema import (
    FingerprintFile,
    LibraryDescription,
    MatchEntry,
    MatchReport,
    MatchReportMeta,
    export_json_schema,
)


class TestLibraryDescription:
    def test_defaults(self) -> None:
        d = LibraryDescription(name="Gson", version="2.8.0")
        assert d.category == "Unknown"
        assert d.release_date is None
        assert d.label == "Gson 2.8.0"

    def test_frozen(self) -> None:
        d = LibraryDescription(name="Gson", version="2.8.0")
        with pytest.raises(ValidationError):
            d.name = "other"  # type: ignore[misc]

    def test_unknown_category_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LibraryDescription(name="x", version="1", category="Games")  # type: ignore[arg-type]

    def test_json_round_trip(self) -> None:
        d = LibraryDescription(name="x", version="1", category="Cloud", release_date=date(2020, 1, 2))
        assert LibraryDescription.model_validate_json(d.model_dump_json()) == d


def test_match_report_serializes() -> None:
    report = MatchReport(
        meta=MatchReportMeta(app="app.json", app_classes=10, corpus_size=1, min_score=0.6, path_aware=True),
        matches=[
            MatchEntry(
                library=LibraryDescription(name="x", version="1"),
                score=1.0,
                strategy="exact",
                matched_classes=4,
                library_classes=4,
                path_agnostic_score=1.0,
            )
        ],
    )
    data = json.loads(report.model_dump_json())
    assert data["schema_version"] == "1.0"
    assert data["matches"][0]["library"]["name"] == "x"
    assert data["meta"]["warnings"] == []


def test_fingerprint_file_defaults() -> None:
    f = FingerprintFile(library=LibraryDescription(name="x", version="1"))
    assert f.schema_version == "1.0"
    assert f.classes == []
    assert f.hash_trees == []


def test_export_json_schema() -> None:
    schema = json.loads(export_json_schema())
    assert schema["title"] == "MatchReport"
    assert "meta" in schema["properties"]
    assert "matches" in schema["properties"]
