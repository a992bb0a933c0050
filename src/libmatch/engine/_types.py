"""Shared types for the libmatch engine."""

from __future__ import annotations

import hashlib
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Literal

ClassKind = Literal["top_level", "inner", "anonymous", "synthetic", "interface", "enum"]

CLASS_KINDS: tuple[ClassKind, ...] = (
    "top_level",
    "inner",
    "anonymous",
    "synthetic",
    "interface",
    "enum",
)


def md5_hex(text: str) -> str:
    return hashlib.md5(text.encode("utf-8")).hexdigest()  # noqa: S324


def compute_content_hash(signatures: Iterable[str]) -> str:
    """Compute the digest of a class's member signatures, independent of their order."""
    return md5_hex("\n".join(sorted(set(signatures))))


@dataclass(frozen=True)
class ClassDescriptor:
    """Normalized structural view of one class."""

    package_path: tuple[str, ...]
    simple_name: str
    member_signatures: frozenset[str] = field(default_factory=frozenset)
    kind: ClassKind = "top_level"
    content_hash: str = ""  # filled by make_class_descriptor

    @property
    def package(self) -> str:
        return ".".join(self.package_path)

    @property
    def name(self) -> str:
        if not self.package_path:
            return self.simple_name
        return f"{self.package}.{self.simple_name}"


def make_class_descriptor(
    package_path: Iterable[str],
    simple_name: str,
    signatures: Iterable[str] = (),
    kind: ClassKind = "top_level",
) -> ClassDescriptor:
    """Build a ClassDescriptor with its content hash computed from *signatures*."""
    members = frozenset(signatures)
    return ClassDescriptor(
        package_path=tuple(package_path),
        simple_name=simple_name,
        member_signatures=members,
        kind=kind,
        content_hash=compute_content_hash(members),
    )
