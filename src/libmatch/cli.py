"""libmatch CLI entry point."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from typing import Any

import click

from libmatch import __version__
from libmatch.config import ConfigError, HashTreeConfig, MatchConfig, match_config_from_env
from libmatch.loader import load_classes
from libmatch.pipeline import find_library_artifacts, run_match_many, run_profile, run_profile_many
from libmatch.schema import MatchReport, export_json_schema
from libmatch.stats import compute_stats
from libmatch.store import load_corpus

logger = logging.getLogger(__name__)

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 2  # Something went wrong, or some artifacts of a batch failed
EXIT_SKIPPED = 3  # No fingerprint written (profile command)

_LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def _hash_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options that change fingerprint hashes; profile and match must agree."""
    func = click.option(
        "--filter-inner-classes",
        is_flag=True,
        default=False,
        help="Leave inner and anonymous classes out of the hashes.",
    )(func)
    func = click.option(
        "--filter-duplicates",
        is_flag=True,
        default=False,
        help="Collapse identical classes within a package.",
    )(func)
    func = click.option(
        "--fuzzy",
        is_flag=True,
        default=False,
        help="Replace non-framework types in signatures with a placeholder.",
    )(func)
    func = click.option(
        "--all-members",
        is_flag=True,
        default=False,
        help="Hash non-public members too (default: public only).",
    )(func)
    return func


def _format_match_text(report: MatchReport) -> str:
    lines = [f"{report.meta.app} ({report.meta.app_classes} classes)"]
    if report.meta.error:
        lines.append(f"  error: {report.meta.error}")
    elif not report.matches:
        lines.append("  no libraries found")
    for m in report.matches:
        where = f" at {m.location}" if m.location else ""
        lines.append(
            f"  {m.library.name} {m.library.version} [{m.library.category}]"
            f"  score={m.score:.3f} ({m.strategy})"
            f"  classes={m.matched_classes}/{m.library_classes}{where}"
        )
    for w in report.meta.warnings:
        lines.append(f"  warning: {w}")
    return "\n".join(lines)


@click.group()
@click.version_option(__version__, "--version", "-v")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default="warning",
    help="Log verbosity on stderr (default: warning).",
)
def main(log_level: str) -> None:
    """libmatch: detect third-party libraries in compiled apps by structural fingerprints."""
    logging.basicConfig(level=getattr(logging, log_level.upper()), format=_LOG_FORMAT, stream=sys.stderr)


@main.command()
@click.argument("classes_json", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--description",
    "-d",
    "description_xml",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="library.xml with name, version and category.",
)
@click.option(
    "--profiles-dir",
    "-p",
    default="profiles",
    type=click.Path(file_okay=False),
    help="Fingerprint output directory (default: ./profiles).",
)
@_hash_options
def profile(
    classes_json: str,
    description_xml: str,
    profiles_dir: str,
    filter_inner_classes: bool,
    filter_duplicates: bool,
    fuzzy: bool,
    all_members: bool,
) -> None:
    """Fingerprint a library from its class dump.

    CLASSES_JSON: class hierarchy dump of the library artifact.
    """
    try:
        report = run_profile(
            classes_json,
            description_xml,
            profiles_dir,
            HashTreeConfig(filter_inner_classes=filter_inner_classes, filter_duplicates=filter_duplicates),
            public_only=not all_members,
            fuzzy=fuzzy,
        )
        click.echo(report.model_dump_json(indent=2))
        sys.exit(EXIT_SKIPPED if report.skipped else EXIT_SUCCESS)
    except SystemExit:
        raise
    except Exception as exc:
        logger.debug("CLI error", exc_info=True)
        click.echo(f"Error: {exc}", err=True)
        sys.exit(EXIT_ERROR)


@main.command("profile-all")
@click.argument("libs_dir", type=click.Path(exists=True, file_okay=False))
@click.option(
    "--profiles-dir",
    "-p",
    default="profiles",
    type=click.Path(file_okay=False),
    help="Fingerprint output directory (default: ./profiles).",
)
@_hash_options
def profile_all(
    libs_dir: str,
    profiles_dir: str,
    filter_inner_classes: bool,
    filter_duplicates: bool,
    fuzzy: bool,
    all_members: bool,
) -> None:
    """Fingerprint every library below a directory.

    LIBS_DIR: each directory holding a library.xml next to a classes.json is
    one library. A library that fails is reported and the rest continue.
    """
    try:
        artifacts = find_library_artifacts(libs_dir)
        if not artifacts:
            click.echo(f"Error: no library.xml found below {libs_dir}", err=True)
            sys.exit(EXIT_ERROR)
        reports = run_profile_many(
            artifacts,
            profiles_dir,
            HashTreeConfig(filter_inner_classes=filter_inner_classes, filter_duplicates=filter_duplicates),
            public_only=not all_members,
            fuzzy=fuzzy,
        )
        click.echo(json.dumps([r.model_dump(mode="json") for r in reports], indent=2))
        sys.exit(EXIT_ERROR if any(r.error for r in reports) else EXIT_SUCCESS)
    except SystemExit:
        raise
    except Exception as exc:
        logger.debug("CLI error", exc_info=True)
        click.echo(f"Error: {exc}", err=True)
        sys.exit(EXIT_ERROR)


@main.command()
@click.argument("app_json", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--profiles-dir",
    "-p",
    default="profiles",
    type=click.Path(file_okay=False),
    help="Directory holding library fingerprints (default: ./profiles).",
)
@click.option("--min-score", type=float, default=None, help="Report threshold in [0, 1].")
@click.option(
    "--path-aware/--no-path-aware",
    default=None,
    help="Use package structure to break ties (default: enabled).",
)
@click.option(
    "--path-aware-weight",
    type=float,
    default=None,
    help="Share of the path-aware score in the final score (default: 0).",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["json", "text"]),
    default="json",
    help="Output format (default: json).",
)
@click.option("--workers", type=int, default=1, help="Applications matched in parallel.")
@_hash_options
def match(
    app_json: tuple[str, ...],
    profiles_dir: str,
    min_score: float | None,
    path_aware: bool | None,
    path_aware_weight: float | None,
    fmt: str,
    workers: int,
    filter_inner_classes: bool,
    filter_duplicates: bool,
    fuzzy: bool,
    all_members: bool,
) -> None:
    """Find known libraries in application class dumps.

    APP_JSON: one or more class hierarchy dumps of applications.
    """
    try:
        env = match_config_from_env()
        config = MatchConfig(
            min_score=env.min_score if min_score is None else min_score,
            path_aware=env.path_aware if path_aware is None else path_aware,
            path_aware_weight=env.path_aware_weight if path_aware_weight is None else path_aware_weight,
        )
        corpus = load_corpus(profiles_dir)
        reports = run_match_many(
            list(app_json),
            corpus,
            config,
            HashTreeConfig(filter_inner_classes=filter_inner_classes, filter_duplicates=filter_duplicates),
            public_only=not all_members,
            fuzzy=fuzzy,
            workers=workers,
        )

        if fmt == "json":
            if len(reports) == 1:
                click.echo(reports[0].model_dump_json(indent=2))
            else:
                click.echo(json.dumps([r.model_dump(mode="json") for r in reports], indent=2))
        else:
            click.echo("\n\n".join(_format_match_text(r) for r in reports))
        sys.exit(EXIT_ERROR if any(r.meta.error for r in reports) else EXIT_SUCCESS)
    except SystemExit:
        raise
    except ConfigError as exc:
        click.echo(f"Error: invalid configuration: {exc}", err=True)
        sys.exit(EXIT_ERROR)
    except Exception as exc:
        logger.debug("CLI error", exc_info=True)
        click.echo(f"Error: {exc}", err=True)
        sys.exit(EXIT_ERROR)


@main.command()
@click.argument("classes_json", type=click.Path(exists=True, dir_okay=False))
def stats(classes_json: str) -> None:
    """Print class hierarchy statistics of a class dump."""
    try:
        result = compute_stats(load_classes(classes_json))
        click.echo(result.to_record().model_dump_json(indent=2))
    except Exception as exc:
        logger.debug("CLI error", exc_info=True)
        click.echo(f"Error: {exc}", err=True)
        sys.exit(EXIT_ERROR)


@main.command()
def schema() -> None:
    """Print the JSON schema of match reports."""
    click.echo(export_json_schema())
