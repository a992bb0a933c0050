"""Fingerprint persistence.

Fingerprints live at ``<profiles>/<category>/<name>_<version>.lib`` as JSON
(:class:`~libmatch.schema.FingerprintFile`). A loaded corpus is an
immutable snapshot: nothing here mutates a fingerprint after loading.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from libmatch.config import HashTreeConfig
from libmatch.engine._types import make_class_descriptor
from libmatch.engine.errors import LibMatchError, MalformedPathError
from libmatch.engine.hash_tree import HashNode, HashTree
from libmatch.engine.package_tree import build_package_tree
from libmatch.engine.profiler import LibraryFingerprint
from libmatch.schema import (
    ClassRecord,
    FingerprintFile,
    HashNodeRecord,
    HashTreeRecord,
    LibraryDescription,
)

logger = logging.getLogger(__name__)

FILE_EXT_LIB_PROFILE = "lib"


class CorpusError(LibMatchError):
    """A fingerprint file cannot be read or decoded."""


@dataclass(frozen=True)
class Corpus:
    """Read-only snapshot of the known fingerprints."""

    fingerprints: tuple[LibraryFingerprint, ...] = ()
    skipped: tuple[str, ...] = ()  # files that failed to load

    def __len__(self) -> int:
        return len(self.fingerprints)

    def __iter__(self) -> Iterator[LibraryFingerprint]:
        return iter(self.fingerprints)


# ---------------------------------------------------------------------------
# Record conversion
# ---------------------------------------------------------------------------


def _node_to_record(node: HashNode) -> HashNodeRecord:
    return HashNodeRecord(
        segment=node.segment,
        node_hash=node.node_hash,
        subtree_hash=node.subtree_hash,
        class_hashes=list(node.class_hashes),
        class_count=node.class_count,
        children=[_node_to_record(c) for c in node.children],
    )


def _node_from_record(rec: HashNodeRecord) -> HashNode:
    return HashNode(
        segment=rec.segment,
        node_hash=rec.node_hash,
        subtree_hash=rec.subtree_hash,
        class_hashes=tuple(rec.class_hashes),
        class_count=rec.class_count,
        children=tuple(_node_from_record(c) for c in rec.children),
    )


def fingerprint_to_record(fp: LibraryFingerprint) -> FingerprintFile:
    classes = [
        ClassRecord(
            package=list(cd.package_path),
            name=cd.simple_name,
            kind=cd.kind,
            signatures=sorted(cd.member_signatures),
            content_hash=cd.content_hash,
        )
        for cd in fp.package_tree.classes()
    ]
    trees = [
        HashTreeRecord(
            root_path=list(t.root_path),
            filter_inner_classes=t.config.filter_inner_classes,
            filter_duplicates=t.config.filter_duplicates,
            root=_node_to_record(t.root),
        )
        for t in fp.hash_trees
    ]
    return FingerprintFile(library=fp.description, classes=classes, hash_trees=trees)


def fingerprint_from_record(rec: FingerprintFile) -> LibraryFingerprint:
    descriptors = []
    for c in rec.classes:
        cd = make_class_descriptor(c.package, c.name, c.signatures, c.kind)
        if cd.content_hash != c.content_hash:
            raise CorpusError(f"{rec.library.label}: content hash mismatch for {cd.name}")
        descriptors.append(cd)

    trees = tuple(
        HashTree(
            root_path=tuple(t.root_path),
            root=_node_from_record(t.root),
            config=HashTreeConfig(
                filter_inner_classes=t.filter_inner_classes,
                filter_duplicates=t.filter_duplicates,
            ),
        )
        for t in rec.hash_trees
    )
    try:
        package_tree = build_package_tree(descriptors)
    except MalformedPathError as exc:
        raise CorpusError(f"{rec.library.label}: {exc}") from exc
    return LibraryFingerprint(
        description=rec.library,
        package_tree=package_tree,
        hash_trees=trees,
    )


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


def fingerprint_path(profiles_dir: str | Path, description: LibraryDescription) -> Path:
    file_name = f"{description.name.replace(' ', '-')}_{description.version}.{FILE_EXT_LIB_PROFILE}"
    return Path(profiles_dir) / description.category / file_name


def save_fingerprint(fp: LibraryFingerprint, profiles_dir: str | Path) -> Path:
    """Write *fp* below *profiles_dir* and return the file path."""
    path = fingerprint_path(profiles_dir, fp.description)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(fingerprint_to_record(fp).model_dump_json(), encoding="utf-8")
    logger.info("Serialized library fingerprint to %s", path)
    return path


def load_fingerprint(path: str | Path) -> LibraryFingerprint:
    path = Path(path)
    try:
        rec = FingerprintFile.model_validate_json(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise CorpusError(f"cannot read {path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise CorpusError(f"{path}: not a JSON fingerprint file: {exc}") from exc
    except ValidationError as exc:
        raise CorpusError(f"{path}: invalid fingerprint file: {exc}") from exc
    return fingerprint_from_record(rec)


def load_corpus(profiles_dir: str | Path) -> Corpus:
    """Load every ``*.lib`` file below *profiles_dir*.

    Files that fail to load are logged and left out of the snapshot.
    """
    root = Path(profiles_dir)
    if not root.is_dir():
        raise CorpusError(f"profiles directory not found: {root}")

    fingerprints: list[LibraryFingerprint] = []
    skipped: list[str] = []
    for path in sorted(root.rglob(f"*.{FILE_EXT_LIB_PROFILE}")):
        try:
            fingerprints.append(load_fingerprint(path))
        except CorpusError as exc:
            logger.warning("Skipping fingerprint: %s", exc)
            skipped.append(str(path))

    logger.info("Loaded %d fingerprints from %s (%d skipped)", len(fingerprints), root, len(skipped))
    return Corpus(fingerprints=tuple(fingerprints), skipped=tuple(skipped))
