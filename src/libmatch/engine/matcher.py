"""Library matching: score a query hash tree against reference fingerprints."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Literal

from libmatch.config import MatchConfig
from libmatch.engine.hash_tree import HashNode, HashTree
from libmatch.engine.package_tree import PackagePath
from libmatch.engine.profiler import LibraryFingerprint
from libmatch.schema import LibraryDescription

MatchStrategy = Literal["exact", "partial"]


@dataclass(frozen=True)
class LibraryMatch:
    """A scored reference library found in the query."""

    description: LibraryDescription
    score: float
    matched_class_count: int
    class_count: int  # classes in the reference fingerprint
    strategy: MatchStrategy
    path_agnostic_score: float
    path_aware_score: float | None = None  # None = path-aware matching disabled
    matched_package_count: int = 0
    location: str | None = None  # query package the library was anchored at


@dataclass(frozen=True)
class QueryIndex:
    """Lookup tables derived once per query tree. Read-only."""

    tree: HashTree
    subtree_paths: dict[str, PackagePath] = field(default_factory=dict)
    node_bag: Counter[str] = field(default_factory=Counter)
    class_bag: Counter[str] = field(default_factory=Counter)
    by_depth: dict[int, list[tuple[PackagePath, HashNode]]] = field(default_factory=dict)

    @classmethod
    def from_tree(cls, tree: HashTree) -> QueryIndex:
        subtree_paths: dict[str, PackagePath] = {}
        by_depth: dict[int, list[tuple[PackagePath, HashNode]]] = {}
        for path, node in tree.iter_nodes():
            subtree_paths.setdefault(node.subtree_hash, path)
            if node.class_count:
                by_depth.setdefault(len(path), []).append((path, node))
        return cls(
            tree=tree,
            subtree_paths=subtree_paths,
            node_bag=tree.node_hash_bag(),
            class_bag=tree.class_hash_bag(),
            by_depth=by_depth,
        )


# ---------------------------------------------------------------------------
# Path-agnostic (bag-of-hashes) evidence
# ---------------------------------------------------------------------------


def _path_agnostic(trees: Iterable[HashTree], query: QueryIndex) -> tuple[int, int]:
    """Return ``(matched_classes, matched_packages)`` ignoring package names.

    Whole packages are matched by node hash first, largest first, so big
    packages dominate. Classes of unmatched packages are then matched one by
    one against the query classes not already consumed.
    """
    available_nodes = query.node_bag.copy()
    available_classes = query.class_bag.copy()

    packages = [n for t in trees for _, n in t.iter_nodes() if n.class_hashes]
    packages.sort(key=lambda n: (-n.direct_class_count, n.node_hash))

    matched = 0
    matched_packages = 0
    loose: Counter[str] = Counter()
    for node in packages:
        if available_nodes[node.node_hash] > 0:
            available_nodes[node.node_hash] -= 1
            available_classes.subtract(node.class_hashes)
            matched += node.direct_class_count
            matched_packages += 1
        else:
            loose.update(node.class_hashes)

    matched += sum((loose & available_classes).values())
    return matched, matched_packages


# ---------------------------------------------------------------------------
# Path-aware alignment
# ---------------------------------------------------------------------------

_PairRule = Callable[[HashNode, HashNode], bool]

_PAIR_RULES: tuple[_PairRule, ...] = (
    lambda r, q: r.subtree_hash == q.subtree_hash,
    lambda r, q: r.segment == q.segment,
    lambda r, q: bool(r.class_hashes) and r.node_hash == q.node_hash,
)


def _pair_children(
    refs: tuple[HashNode, ...],
    queries: tuple[HashNode, ...],
) -> list[tuple[HashNode, HashNode]]:
    """Pair reference children with query children, names optional."""
    remaining_ref = list(refs)
    remaining_query = list(queries)
    pairs: list[tuple[HashNode, HashNode]] = []

    for rule in _PAIR_RULES:
        for r in list(remaining_ref):
            q = next((q for q in remaining_query if rule(r, q)), None)
            if q is not None:
                pairs.append((r, q))
                remaining_ref.remove(r)
                remaining_query.remove(q)

    # Positional pairing: largest with largest
    remaining_ref.sort(key=lambda n: (-n.class_count, n.segment))
    remaining_query.sort(key=lambda n: (-n.class_count, n.segment))
    pairs.extend(zip(remaining_ref, remaining_query))
    return pairs


def _align(ref: HashNode, query: HashNode) -> int:
    """Number of reference classes found at the same position under *query*."""
    if ref.subtree_hash == query.subtree_hash:
        return ref.class_count

    if ref.node_hash == query.node_hash:
        matched = ref.direct_class_count
    else:
        matched = sum((Counter(ref.class_hashes) & Counter(query.class_hashes)).values())

    for r, q in _pair_children(ref.children, query.children):
        matched += _align(r, q)
    return matched


def _anchor(ref: HashTree, query: QueryIndex) -> tuple[int, PackagePath | None]:
    """Best alignment of *ref* against query nodes at the same package depth."""
    candidates = query.by_depth.get(len(ref.root_path), [])
    # Same path first so it wins ties
    candidates = sorted(candidates, key=lambda c: c[0] != ref.root_path)

    best, best_path = 0, None
    for path, node in candidates:
        score = _align(ref.root, node)
        if score > best:
            best, best_path = score, path
            if best == ref.class_count:
                break
    return best, best_path


def _path_aware(trees: Iterable[HashTree], query: QueryIndex) -> tuple[int, PackagePath | None]:
    matched = 0
    location: PackagePath | None = None
    for tree in trees:
        score, path = _anchor(tree, query)
        matched += score
        if location is None:
            location = path
    return matched, location


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def match_fingerprint(
    query: QueryIndex | HashTree,
    fingerprint: LibraryFingerprint,
    config: MatchConfig | None = None,
) -> LibraryMatch | None:
    """Score one reference fingerprint against a query.

    Returns None when the library is not found, scores below
    ``config.min_score`` or was hashed with other HashTreeConfig options
    than the query (see :func:`incompatible_fingerprints`).
    """
    config = config or MatchConfig()
    if isinstance(query, HashTree):
        query = QueryIndex.from_tree(query)

    trees = fingerprint.hash_trees
    total = fingerprint.class_count
    if total == 0:
        return None
    if fingerprint.config != query.tree.config:
        return None

    exact_paths = [query.subtree_paths.get(t.subtree_hash) for t in trees]
    if all(p is not None for p in exact_paths):
        return LibraryMatch(
            description=fingerprint.description,
            score=1.0,
            matched_class_count=total,
            class_count=total,
            strategy="exact",
            path_agnostic_score=1.0,
            path_aware_score=1.0 if config.path_aware else None,
            matched_package_count=sum(sum(t.node_hash_bag().values()) for t in trees),
            location=".".join(exact_paths[0]),  # type: ignore[arg-type]
        )

    matched, matched_packages = _path_agnostic(trees, query)
    agnostic = matched / total

    path_aware: float | None = None
    location: PackagePath | None = None
    aligned = 0
    score = agnostic
    if config.path_aware:
        aligned, location = _path_aware(trees, query)
        path_aware = aligned / total
        w = config.path_aware_weight
        score = (1.0 - w) * agnostic + w * path_aware

    if matched == 0 and aligned == 0:
        return None
    if score < config.min_score:
        return None

    return LibraryMatch(
        description=fingerprint.description,
        score=score,
        matched_class_count=matched,
        class_count=total,
        strategy="partial",
        path_agnostic_score=agnostic,
        path_aware_score=path_aware,
        matched_package_count=matched_packages,
        location=".".join(location) if location is not None else None,
    )


def _rank_key(m: LibraryMatch, config: MatchConfig) -> tuple[float, float, int, str, str]:
    secondary = (m.path_aware_score or 0.0) if config.path_aware else 0.0
    return (-m.score, -secondary, -m.class_count, m.description.name, m.description.version)


def match_corpus(
    query: QueryIndex | HashTree,
    corpus: Iterable[LibraryFingerprint],
    config: MatchConfig | None = None,
) -> list[LibraryMatch]:
    """Match a query against every fingerprint in *corpus*, best first.

    An empty list means nothing scored above the threshold.
    """
    config = config or MatchConfig()
    if isinstance(query, HashTree):
        query = QueryIndex.from_tree(query)

    results = [m for fp in corpus if (m := match_fingerprint(query, fp, config)) is not None]
    results.sort(key=lambda m: _rank_key(m, config))
    return results


def incompatible_fingerprints(
    query: QueryIndex | HashTree,
    corpus: Iterable[LibraryFingerprint],
) -> list[LibraryFingerprint]:
    """Fingerprints whose hash options differ from the query's; these never match."""
    tree = query.tree if isinstance(query, QueryIndex) else query
    return [fp for fp in corpus if fp.class_count and fp.config != tree.config]
