"""Class hierarchy statistics for reporting."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field

from libmatch.engine._types import CLASS_KINDS
from libmatch.loader import LoadedClass
from libmatch.schema import StatsRecord

logger = logging.getLogger(__name__)

INDENT = "    "
INDENT2 = INDENT * 2


@dataclass(frozen=True)
class ClassHierarchyStats:
    class_count: int = 0
    inner_class_count: int = 0
    public_class_count: int = 0
    kinds: dict[str, int] = field(default_factory=dict)
    public_methods: frozenset[str] = frozenset()
    misc_method_count: int = 0  # non-public methods

    @property
    def method_count(self) -> int:
        return len(self.public_methods) + self.misc_method_count

    def to_record(self) -> StatsRecord:
        return StatsRecord(
            classes=self.class_count,
            inner_classes=self.inner_class_count,
            public_classes=self.public_class_count,
            kinds=dict(self.kinds),
            methods=self.method_count,
            public_methods=len(self.public_methods),
            non_public_methods=self.misc_method_count,
        )


def compute_stats(classes: Iterable[LoadedClass]) -> ClassHierarchyStats:
    """Tally classes and methods. Bridge and synthetic methods are ignored."""
    kinds: Counter[str] = Counter({k: 0 for k in CLASS_KINDS})
    public_methods: set[str] = set()
    class_count = inner = public = misc = 0

    for cls in classes:
        class_count += 1
        kinds[cls.kind] += 1
        if cls.is_inner:
            inner += 1
        if cls.public:
            public += 1
        for m in cls.methods:
            if m.bridge or m.synthetic:
                continue
            if m.public:
                public_methods.add(f"{cls.name}.{m.signature}")
            else:
                misc += 1

    return ClassHierarchyStats(
        class_count=class_count,
        inner_class_count=inner,
        public_class_count=public,
        kinds=dict(kinds),
        public_methods=frozenset(public_methods),
        misc_method_count=misc,
    )


def log_stats(stats: ClassHierarchyStats) -> None:
    logger.info("= ClassHierarchy Stats =")
    logger.info("%s# of classes: %d", INDENT, stats.class_count)
    logger.info("%s# thereof inner classes: %d", INDENT, stats.inner_class_count)
    logger.info("%s# thereof public classes: %d", INDENT, stats.public_class_count)
    for kind in CLASS_KINDS:
        logger.info("%s%s : %d", INDENT2, kind, stats.kinds.get(kind, 0))
    logger.info("%s# methods: %d", INDENT, stats.method_count)
    logger.info("%s# of publicly accessible methods: %d", INDENT2, len(stats.public_methods))
    logger.info("%s# of non-accessible methods: %d", INDENT2, stats.misc_method_count)
