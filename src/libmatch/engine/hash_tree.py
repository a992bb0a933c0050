"""Hash tree: rolled-up structural hashes over a package tree.

Each node carries a *node hash* over its own classes and a *subtree hash*
that folds in every descendant. Both are order-independent: class hashes
are sorted before hashing and child subtree hashes are combined in sorted
order, so neither input order nor package names affect the digests.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from libmatch.config import HashTreeConfig
from libmatch.engine._types import ClassDescriptor, md5_hex
from libmatch.engine.package_tree import PackageNode, PackagePath, PackageTree

_FILTERED_INNER_KINDS = frozenset({"inner", "anonymous"})


@dataclass(frozen=True)
class HashNode:
    """Immutable hash summary of one package and its descendants."""

    segment: str
    node_hash: str
    subtree_hash: str
    class_hashes: tuple[str, ...] = ()
    class_count: int = 0
    children: tuple[HashNode, ...] = ()

    @property
    def direct_class_count(self) -> int:
        return len(self.class_hashes)


@dataclass(frozen=True)
class HashTree:
    """A HashNode hierarchy anchored at ``root_path`` inside its package tree."""

    root_path: PackagePath
    root: HashNode
    config: HashTreeConfig = field(default_factory=HashTreeConfig)

    @property
    def subtree_hash(self) -> str:
        return self.root.subtree_hash

    @property
    def class_count(self) -> int:
        return self.root.class_count

    @property
    def root_package(self) -> str:
        return ".".join(self.root_path)

    def iter_nodes(self) -> Iterator[tuple[PackagePath, HashNode]]:
        """Pre-order walk yielding absolute ``(path, node)`` pairs."""
        stack: list[tuple[PackagePath, HashNode]] = [(self.root_path, self.root)]
        while stack:
            path, node = stack.pop()
            yield path, node
            for child in reversed(node.children):
                stack.append(((*path, child.segment), child))

    def find(self, path: Iterable[str]) -> HashNode | None:
        """Look up a node by absolute package path."""
        path = tuple(path)
        if path[: len(self.root_path)] != self.root_path:
            return None
        node = self.root
        for segment in path[len(self.root_path) :]:
            child = next((c for c in node.children if c.segment == segment), None)
            if child is None:
                return None
            node = child
        return node

    def node_hash_bag(self) -> Counter[str]:
        """Multiset of node hashes for every package holding classes."""
        return Counter(n.node_hash for _, n in self.iter_nodes() if n.class_hashes)

    def class_hash_bag(self) -> Counter[str]:
        bag: Counter[str] = Counter()
        for _, node in self.iter_nodes():
            bag.update(node.class_hashes)
        return bag


def hash_node_classes(class_hashes: Iterable[str]) -> str:
    return md5_hex(";".join(sorted(class_hashes)))


def hash_subtree(node_hash: str, child_subtree_hashes: Iterable[str]) -> str:
    return md5_hex(node_hash + ":" + ",".join(sorted(child_subtree_hashes)))


def _included(cd: ClassDescriptor, config: HashTreeConfig) -> bool:
    return not (config.filter_inner_classes and cd.kind in _FILTERED_INNER_KINDS)


def _build_node(node: PackageNode, config: HashTreeConfig) -> HashNode:
    # Post-order: children first, empty (fully filtered) subtrees are pruned.
    children = tuple(
        child
        for child in (_build_node(c, config) for c in node.sorted_children())
        if child.class_count > 0
    )

    hashes = [cd.content_hash for cd in node.classes if _included(cd, config)]
    if config.filter_duplicates:
        hashes = list(set(hashes))
    class_hashes = tuple(sorted(hashes))

    node_hash = hash_node_classes(class_hashes)
    return HashNode(
        segment=node.segment,
        node_hash=node_hash,
        subtree_hash=hash_subtree(node_hash, (c.subtree_hash for c in children)),
        class_hashes=class_hashes,
        class_count=len(class_hashes) + sum(c.class_count for c in children),
        children=children,
    )


def build_hash_tree(
    tree: PackageTree,
    config: HashTreeConfig | None = None,
    root_path: Iterable[str] | None = None,
) -> HashTree:
    """Build the HashTree of *tree* rooted at *root_path*.

    *root_path* defaults to the tree's dominant root package; pass ``()`` to
    hash the whole tree from the super-root.
    """
    config = config or HashTreeConfig()
    path = tree.root_path if root_path is None else tuple(root_path)
    node = tree.find(path)
    if node is None:
        raise KeyError(f"Package {'.'.join(path)!r} not in tree")
    return HashTree(root_path=path, root=_build_node(node, config), config=config)


def build_hash_trees(tree: PackageTree, config: HashTreeConfig | None = None) -> list[HashTree]:
    """Build one HashTree per disjoint root subtree, skipping empty ones."""
    trees = [build_hash_tree(tree, config, root) for root in tree.top_level_roots()]
    return [t for t in trees if t.class_count > 0]
