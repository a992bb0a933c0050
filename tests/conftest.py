"""Shared test fixtures."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from libmatch.engine._types import ClassDescriptor, ClassKind, make_class_descriptor
from libmatch.schema import LibraryDescription

ClassFactory = Callable[..., ClassDescriptor]
LibraryFactory = Callable[..., list[ClassDescriptor]]
DumpWriter = Callable[[str, list[dict[str, Any]]], Path]
XmlWriter = Callable[..., Path]
RecordFactory = Callable[..., list[dict[str, Any]]]


def _cls(package: str, name: str, *signatures: str, kind: ClassKind = "top_level") -> ClassDescriptor:
    path = tuple(package.split(".")) if package else ()
    return make_class_descriptor(path, name, signatures, kind)


def _library(root: str, packages: int = 3, classes_per_package: int = 4, tag: str = "lib") -> list[ClassDescriptor]:
    """Classes spread over ``<root>.p0`` … ``<root>.pN`` with distinct members."""
    classes = []
    for p in range(packages):
        for c in range(classes_per_package):
            classes.append(
                _cls(
                    f"{root}.p{p}",
                    f"C{c}",
                    f"{tag}_p{p}_c{c}_run()V",
                    f"{tag}_p{p}_c{c}_get()I",
                )
            )
    return classes


@pytest.fixture
def make_class() -> ClassFactory:
    """``make_class("com.example", "Foo", "run()V", kind="inner")``."""
    return _cls


@pytest.fixture
def make_library() -> LibraryFactory:
    """``make_library("com.example", packages=3, classes_per_package=4, tag="x")``."""
    return _library


@pytest.fixture
def description() -> LibraryDescription:
    return LibraryDescription(name="Example Lib", version="1.0.0", category="Utilities")


@pytest.fixture
def write_class_dump(tmp_path: Path) -> DumpWriter:
    """Write a JSON class dump into tmp_path and return its path."""

    def _write(name: str, classes: list[dict[str, Any]]) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps({"classes": classes}))
        return path

    return _write


LIBRARY_XML = """\
<library>
    <name>{name}</name>
    <category>{category}</category>
    <version>{version}</version>
    <releasedate>2017-05-29</releasedate>
    <comment>test library</comment>
</library>
"""


@pytest.fixture
def write_library_xml(tmp_path: Path) -> XmlWriter:
    def _write(name: str = "Example Lib", version: str = "1.0.0", category: str = "Utilities") -> Path:
        path = tmp_path / f"{name.replace(' ', '_')}_{version}.xml"
        path.write_text(LIBRARY_XML.format(name=name, version=version, category=category))
        return path

    return _write


def class_dump_records(root: str, packages: int = 2, classes_per_package: int = 3, tag: str = "lib") -> list[dict[str, Any]]:
    """Loader-format records mirroring ``make_library``."""
    records = []
    for p in range(packages):
        for c in range(classes_per_package):
            records.append(
                {
                    "name": f"{root}.p{p}.C{c}",
                    "methods": [
                        {"signature": f"{tag}_p{p}_c{c}_run()V"},
                        {"signature": f"{tag}_p{p}_c{c}_get()I"},
                    ],
                }
            )
    return records


@pytest.fixture
def library_records() -> RecordFactory:
    return class_dump_records
