"""Package tree: classes grouped by package path segments."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from libmatch.engine._types import ClassDescriptor
from libmatch.engine.errors import MalformedPathError

PackagePath = tuple[str, ...]

_INVALID_SEGMENT_CHARS = (".", "/", "\\")


@dataclass
class PackageNode:
    """One package. Owns its direct classes and its sub-packages."""

    segment: str
    classes: set[ClassDescriptor] = field(default_factory=set)
    children: dict[str, PackageNode] = field(default_factory=dict)

    def sorted_children(self) -> list[PackageNode]:
        return [self.children[k] for k in sorted(self.children)]

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def class_count(self) -> int:
        return len(self.classes) + sum(c.class_count for c in self.children.values())


def _validate_path(cd: ClassDescriptor) -> None:
    for segment in cd.package_path:
        if not segment:
            raise MalformedPathError(cd.name, cd.package_path, "empty segment")
        if segment != segment.strip():
            raise MalformedPathError(cd.name, cd.package_path, f"whitespace in segment {segment!r}")
        if any(ch in segment for ch in _INVALID_SEGMENT_CHARS):
            raise MalformedPathError(cd.name, cd.package_path, f"separator in segment {segment!r}")


class PackageTree:
    """Ordered package hierarchy built from a set of ClassDescriptors.

    The tree always starts at a synthetic super-root (empty prefix). The
    *dominant root* is found by descending while a package holds no classes
    and exactly one sub-package; libraries whose classes live under several
    top-level packages have no dominant root.
    """

    def __init__(self, root: PackageNode | None = None) -> None:
        self.root = root if root is not None else PackageNode(segment="")

    # -- construction ------------------------------------------------------

    def add_class(self, cd: ClassDescriptor) -> None:
        _validate_path(cd)
        node = self.root
        for segment in cd.package_path:
            node = node.children.setdefault(segment, PackageNode(segment=segment))
        node.classes.add(cd)

    # -- root detection ----------------------------------------------------

    @property
    def has_multiple_roots(self) -> bool:
        return len(self.root.children) > 1 and not self.root.classes

    @property
    def root_path(self) -> PackagePath:
        """Path of the dominant root package, or ``()`` for multiple roots."""
        return _dominant_path(self.root, ())

    @property
    def root_package(self) -> str | None:
        if self.has_multiple_roots:
            return None
        return ".".join(self.root_path)

    def top_level_roots(self) -> list[PackagePath]:
        """Dominant path of each disjoint top-level subtree."""
        if not self.has_multiple_roots:
            return [self.root_path]
        return [_dominant_path(child, (child.segment,)) for child in self.root.sorted_children()]

    # -- queries -----------------------------------------------------------

    def find(self, path: Iterable[str]) -> PackageNode | None:
        node = self.root
        for segment in path:
            child = node.children.get(segment)
            if child is None:
                return None
            node = child
        return node

    def __contains__(self, package: object) -> bool:
        if not isinstance(package, str):
            return False
        path = tuple(package.split(".")) if package else ()
        node = self.find(path)
        return node is not None and bool(node.classes)

    def iter_nodes(self) -> Iterator[tuple[PackagePath, PackageNode]]:
        """Pre-order walk in segment order, yielding ``(path, node)``."""
        stack: list[tuple[PackagePath, PackageNode]] = [((), self.root)]
        while stack:
            path, node = stack.pop()
            yield path, node
            for child in reversed(node.sorted_children()):
                stack.append(((*path, child.segment), child))

    def packages(self) -> list[str]:
        """Dotted names of all packages that hold classes, sorted."""
        return sorted(".".join(p) for p, n in self.iter_nodes() if n.classes)

    def classes(self) -> list[ClassDescriptor]:
        result: list[ClassDescriptor] = []
        for _, node in self.iter_nodes():
            result.extend(sorted(node.classes, key=lambda c: (c.simple_name, c.content_hash)))
        return result

    @property
    def number_of_classes(self) -> int:
        return self.root.class_count

    @property
    def number_of_packages(self) -> int:
        return sum(1 for _, n in self.iter_nodes() if n.classes)

    @property
    def number_of_leaf_packages(self) -> int:
        return sum(1 for p, n in self.iter_nodes() if p and n.is_leaf)

    def dump(self) -> str:
        """Indented text rendering, one package per line with its class count."""
        lines: list[str] = []
        for path, node in self.iter_nodes():
            if not path:
                continue
            indent = "  " * (len(path) - 1)
            suffix = f" ({len(node.classes)})" if node.classes else ""
            lines.append(f"{indent}{node.segment}{suffix}")
        return "\n".join(lines)


def _dominant_path(node: PackageNode, path: PackagePath) -> PackagePath:
    while len(node.children) == 1 and not node.classes:
        (node,) = node.children.values()
        path = (*path, node.segment)
    return path


def build_package_tree(classes: Iterable[ClassDescriptor]) -> PackageTree:
    """Build a PackageTree from an unordered collection of classes.

    Synthetic classes are left out. Raises MalformedPathError on the first
    class with an invalid package segment.
    """
    tree = PackageTree()
    for cd in classes:
        if cd.kind == "synthetic":
            continue
        tree.add_class(cd)
    return tree
