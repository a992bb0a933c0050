"""Library fingerprinting: classes → package tree → hash trees."""

from __future__ import annotations

import warnings
from collections.abc import Iterable
from dataclasses import dataclass

from libmatch.config import HashTreeConfig
from libmatch.engine._types import ClassDescriptor
from libmatch.engine.errors import EmptyFingerprintError, MultipleRootsWarning
from libmatch.engine.hash_tree import HashTree, build_hash_trees
from libmatch.engine.package_tree import PackageTree, build_package_tree
from libmatch.schema import LibraryDescription


@dataclass(frozen=True)
class LibraryFingerprint:
    """Structural summary of one library version. Never mutated once built."""

    description: LibraryDescription
    package_tree: PackageTree
    hash_trees: tuple[HashTree, ...]

    @property
    def class_count(self) -> int:
        return sum(t.class_count for t in self.hash_trees)

    @property
    def config(self) -> HashTreeConfig:
        return self.hash_trees[0].config if self.hash_trees else HashTreeConfig()


def profile_library(
    classes: Iterable[ClassDescriptor],
    description: LibraryDescription,
    config: HashTreeConfig | None = None,
) -> LibraryFingerprint:
    """Fingerprint a library from its class descriptors.

    Raises:
        MalformedPathError: a class has an invalid package segment.
        EmptyFingerprintError: no classes are left to hash.

    Emits MultipleRootsWarning when the classes span several top-level
    packages; fingerprinting continues with one hash tree per root.
    """
    package_tree = build_package_tree(classes)
    if package_tree.has_multiple_roots:
        roots = ", ".join(".".join(p) for p in package_tree.top_level_roots())
        warnings.warn(
            MultipleRootsWarning(f"{description.label}: library contains multiple root packages ({roots})"),
            stacklevel=2,
        )

    hash_trees = build_hash_trees(package_tree, config)
    if not hash_trees:
        raise EmptyFingerprintError(f"{description.label}: empty hash tree generated")

    return LibraryFingerprint(
        description=description,
        package_tree=package_tree,
        hash_trees=tuple(hash_trees),
    )
