"""End-to-end flows: class dump → fingerprint file, class dump → match report."""

from __future__ import annotations

import logging
import time
import warnings
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from libmatch.config import HashTreeConfig, MatchConfig
from libmatch.engine.errors import EmptyFingerprintError, LibMatchError, MultipleRootsWarning
from libmatch.engine.hash_tree import build_hash_tree
from libmatch.engine.matcher import LibraryMatch, QueryIndex, incompatible_fingerprints, match_corpus
from libmatch.engine.package_tree import build_package_tree
from libmatch.engine.profiler import profile_library
from libmatch.library_xml import read_library_xml
from libmatch.loader import load_classes, to_descriptors
from libmatch.schema import MatchEntry, MatchReport, MatchReportMeta, ProfileReport
from libmatch.stats import compute_stats, log_stats
from libmatch.store import Corpus, save_fingerprint

logger = logging.getLogger(__name__)

LIBRARY_XML_NAME = "library.xml"
CLASS_DUMP_NAME = "classes.json"


def run_profile(
    classes_path: str | Path,
    description_path: str | Path,
    profiles_dir: str | Path,
    hash_config: HashTreeConfig | None = None,
    *,
    public_only: bool = True,
    fuzzy: bool = False,
) -> ProfileReport:
    """Fingerprint one library and persist it.

    An artifact without usable classes is reported as skipped and nothing
    is written. MalformedPathError propagates to the caller.
    """
    t0 = time.monotonic()

    description = read_library_xml(description_path)
    logger.info("Process library: %s", Path(classes_path).name)
    logger.info("Library description: %s (%s)", description.label, description.category)

    loaded = load_classes(classes_path)
    stats = compute_stats(loaded)
    log_stats(stats)

    descriptors = to_descriptors(loaded, public_only=public_only, fuzzy=fuzzy)
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", MultipleRootsWarning)
        try:
            fp = profile_library(descriptors, description, hash_config)
        except EmptyFingerprintError as exc:
            logger.error("Empty Hash Tree generated - SKIP (%s)", exc)
            return ProfileReport(
                source=str(classes_path),
                library=description,
                skipped=True,
                reason=str(exc),
                stats=stats.to_record(),
                timing_ms=round((time.monotonic() - t0) * 1000, 2),
            )

    warning_texts = [str(w.message) for w in caught if issubclass(w.category, MultipleRootsWarning)]
    for text in warning_texts:
        logger.warning(text)

    path = save_fingerprint(fp, profiles_dir)
    elapsed_ms = (time.monotonic() - t0) * 1000
    logger.info("Processing time: %.2f ms", elapsed_ms)

    return ProfileReport(
        source=str(classes_path),
        library=description,
        output_path=str(path),
        root_package=fp.package_tree.root_package,
        classes=fp.class_count,
        packages=fp.package_tree.number_of_packages,
        hash_trees=len(fp.hash_trees),
        stats=stats.to_record(),
        warnings=warning_texts,
        timing_ms=round(elapsed_ms, 2),
    )


def find_library_artifacts(libs_dir: str | Path) -> list[tuple[Path, Path]]:
    """Return ``(class dump, library.xml)`` pairs below *libs_dir*.

    Every directory holding a ``library.xml`` is one library; its class dump
    is the sibling ``classes.json``.
    """
    root = Path(libs_dir)
    return [(xml.parent / CLASS_DUMP_NAME, xml) for xml in sorted(root.rglob(LIBRARY_XML_NAME))]


def run_profile_many(
    artifacts: Sequence[tuple[str | Path, str | Path]],
    profiles_dir: str | Path,
    hash_config: HashTreeConfig | None = None,
    *,
    public_only: bool = True,
    fuzzy: bool = False,
) -> list[ProfileReport]:
    """Fingerprint several libraries, one report per ``(classes, description)`` pair.

    A library that fails to load or has a malformed package path gets a
    report with ``error`` set; the remaining libraries are still processed.
    """
    reports: list[ProfileReport] = []
    for classes_path, description_path in artifacts:
        try:
            report = run_profile(
                classes_path,
                description_path,
                profiles_dir,
                hash_config,
                public_only=public_only,
                fuzzy=fuzzy,
            )
        except LibMatchError as exc:
            logger.error("Failed to profile %s: %s", classes_path, exc)
            report = ProfileReport(source=str(classes_path), error=str(exc))
        reports.append(report)
    return reports


def _to_entry(m: LibraryMatch) -> MatchEntry:
    return MatchEntry(
        library=m.description,
        score=round(m.score, 4),
        strategy=m.strategy,
        matched_classes=m.matched_class_count,
        library_classes=m.class_count,
        path_agnostic_score=round(m.path_agnostic_score, 4),
        path_aware_score=round(m.path_aware_score, 4) if m.path_aware_score is not None else None,
        matched_packages=m.matched_package_count,
        location=m.location,
    )


def run_match(
    app_path: str | Path,
    corpus: Corpus,
    match_config: MatchConfig | None = None,
    hash_config: HashTreeConfig | None = None,
    *,
    public_only: bool = True,
    fuzzy: bool = False,
) -> MatchReport:
    """Match one application class dump against a corpus snapshot."""
    t0 = time.monotonic()
    match_config = match_config or MatchConfig()

    loaded = load_classes(app_path)
    package_tree = build_package_tree(to_descriptors(loaded, public_only=public_only, fuzzy=fuzzy))
    query = QueryIndex.from_tree(build_hash_tree(package_tree, hash_config, root_path=()))

    matches = match_corpus(query, corpus, match_config)
    logger.info("%s: %d of %d libraries matched", app_path, len(matches), len(corpus))

    meta_warnings: list[str] = []
    if query.tree.class_count == 0:
        meta_warnings.append("application contains no classes to match")
    meta_warnings.extend(f"fingerprint skipped: {p}" for p in corpus.skipped)
    for fp in incompatible_fingerprints(query, corpus):
        logger.warning(
            "Skipping %s: fingerprint hash options %s differ from query %s",
            fp.description.label,
            fp.config,
            query.tree.config,
        )
        meta_warnings.append(f"fingerprint hash options differ: {fp.description.label}")

    return MatchReport(
        meta=MatchReportMeta(
            app=str(app_path),
            app_classes=query.tree.class_count,
            corpus_size=len(corpus),
            min_score=match_config.min_score,
            path_aware=match_config.path_aware,
            warnings=meta_warnings,
            timing_ms=round((time.monotonic() - t0) * 1000, 2),
        ),
        matches=[_to_entry(m) for m in matches],
    )


def run_match_many(
    app_paths: Sequence[str | Path],
    corpus: Corpus,
    match_config: MatchConfig | None = None,
    hash_config: HashTreeConfig | None = None,
    *,
    public_only: bool = True,
    fuzzy: bool = False,
    workers: int = 1,
) -> list[MatchReport]:
    """Match several applications against one corpus snapshot.

    Applications are independent; with ``workers > 1`` they run in a thread
    pool. Reports come back in input order. An application that cannot be
    loaded gets a report with ``meta.error`` set and no matches.
    """
    config = match_config or MatchConfig()

    def _one(path: str | Path) -> MatchReport:
        try:
            return run_match(path, corpus, config, hash_config, public_only=public_only, fuzzy=fuzzy)
        except LibMatchError as exc:
            logger.error("Failed to match %s: %s", path, exc)
            return MatchReport(
                meta=MatchReportMeta(
                    app=str(path),
                    app_classes=0,
                    corpus_size=len(corpus),
                    min_score=config.min_score,
                    path_aware=config.path_aware,
                    error=str(exc),
                )
            )

    if workers <= 1 or len(app_paths) <= 1:
        return [_one(p) for p in app_paths]
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(_one, app_paths))
