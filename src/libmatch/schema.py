"""libmatch persisted and report schemas, Pydantic v2 models."""

from __future__ import annotations

import json
from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict

LibraryCategory = Literal[
    "Advertising",
    "Analytics",
    "Android",
    "Cloud",
    "SocialMedia",
    "Utilities",
    "Unknown",
]


class LibraryDescription(BaseModel):
    """Library identity, supplied by the library metadata file."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    category: LibraryCategory = "Unknown"
    release_date: date | None = None
    comment: str | None = None

    @property
    def label(self) -> str:
        return f"{self.name} {self.version}"


# ---------------------------------------------------------------------------
# Persisted fingerprint
# ---------------------------------------------------------------------------


class ClassRecord(BaseModel):
    """A class descriptor as stored in a fingerprint file."""

    package: list[str]
    name: str
    kind: Literal["top_level", "inner", "anonymous", "synthetic", "interface", "enum"] = "top_level"
    signatures: list[str] = []
    content_hash: str


class HashNodeRecord(BaseModel):
    """One hash tree node, children nested."""

    segment: str
    node_hash: str
    subtree_hash: str
    class_hashes: list[str] = []
    class_count: int
    children: list[HashNodeRecord] = []


class HashTreeRecord(BaseModel):
    root_path: list[str]
    filter_inner_classes: bool = False
    filter_duplicates: bool = False
    root: HashNodeRecord


class FingerprintFile(BaseModel):
    """Top-level fingerprint file (``.lib``)."""

    schema_version: str = "1.0"
    library: LibraryDescription
    classes: list[ClassRecord] = []
    hash_trees: list[HashTreeRecord] = []


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


class StatsRecord(BaseModel):
    """Class hierarchy statistics."""

    classes: int
    inner_classes: int
    public_classes: int
    kinds: dict[str, int] = {}
    methods: int
    public_methods: int
    non_public_methods: int


class MatchEntry(BaseModel):
    """A single reported library match."""

    library: LibraryDescription
    score: float
    strategy: Literal["exact", "partial"]
    matched_classes: int
    library_classes: int
    path_agnostic_score: float
    path_aware_score: float | None = None
    matched_packages: int = 0
    location: str | None = None


class MatchReportMeta(BaseModel):
    """Run metadata."""

    app: str
    app_classes: int
    corpus_size: int
    min_score: float
    path_aware: bool
    warnings: list[str] = []
    error: str | None = None  # set when the application could not be processed
    timing_ms: float | None = None


class MatchReport(BaseModel):
    """Top-level match output."""

    schema_version: str = "1.0"
    meta: MatchReportMeta
    matches: list[MatchEntry] = []


class ProfileReport(BaseModel):
    """Outcome of fingerprinting one library."""

    source: str | None = None  # class dump the report is about
    library: LibraryDescription | None = None  # None when library.xml could not be read
    skipped: bool = False
    reason: str | None = None
    output_path: str | None = None
    root_package: str | None = None
    classes: int = 0
    packages: int = 0
    hash_trees: int = 0
    stats: StatsRecord | None = None
    warnings: list[str] = []
    error: str | None = None
    timing_ms: float | None = None


def export_json_schema() -> str:
    """Export the match report JSON schema as a string."""
    return json.dumps(MatchReport.model_json_schema(), indent=2)
