"""Class hierarchy loading from JSON dumps.

Bytecode parsing happens upstream; the extractor writes one JSON document
per artifact::

    {"classes": [
        {"name": "com.example.Foo$Bar", "kind": "inner", "public": true,
         "methods": [{"signature": "run(Ljava/lang/String;)V", "public": true,
                      "synthetic": false, "bridge": false}],
         "fields": [{"signature": "count:I", "public": true}]}
    ]}

Everything here is I/O and normalization. Nothing else reads class dumps.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, cast

from libmatch.engine._types import CLASS_KINDS, ClassDescriptor, ClassKind, make_class_descriptor
from libmatch.engine.errors import LibMatchError

logger = logging.getLogger(__name__)

# Reference types kept verbatim in fuzzy signatures.
FRAMEWORK_PREFIXES: tuple[str, ...] = (
    "java/",
    "javax/",
    "android/",
    "dalvik/",
    "kotlin/",
    "org/w3c/",
    "org/xml/",
    "org/json/",
)

_REF_TYPE_RE = re.compile(r"L([^;]+);")
_ANONYMOUS_RE = re.compile(r"\$\d+$")


class LoaderError(LibMatchError):
    """The class dump cannot be read or is malformed."""


@dataclass(frozen=True)
class Member:
    """A method or field as reported by the extractor."""

    signature: str
    public: bool = True
    synthetic: bool = False
    bridge: bool = False
    is_method: bool = True


@dataclass(frozen=True)
class LoadedClass:
    """A raw class record."""

    name: str  # fully qualified, dotted, "$" for nested classes
    kind: ClassKind = "top_level"
    public: bool = True
    members: tuple[Member, ...] = field(default_factory=tuple)

    @property
    def package_path(self) -> tuple[str, ...]:
        return tuple(self.name.split(".")[:-1])

    @property
    def simple_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]

    @property
    def is_inner(self) -> bool:
        return "$" in self.simple_name

    @property
    def methods(self) -> tuple[Member, ...]:
        return tuple(m for m in self.members if m.is_method)


def infer_kind(name: str) -> ClassKind:
    """Guess the class kind from a binary class name."""
    simple = name.rsplit(".", 1)[-1]
    if _ANONYMOUS_RE.search(simple):
        return "anonymous"
    if "$" in simple:
        return "inner"
    return "top_level"


def _parse_member(raw: Any, is_method: bool, owner: str) -> Member:
    if isinstance(raw, str):
        return Member(signature=raw, is_method=is_method)
    if not isinstance(raw, dict) or not isinstance(raw.get("signature"), str):
        raise LoaderError(f"{owner}: member must be a string or an object with a 'signature'")
    return Member(
        signature=raw["signature"],
        public=bool(raw.get("public", True)),
        synthetic=bool(raw.get("synthetic", False)),
        bridge=bool(raw.get("bridge", False)),
        is_method=is_method,
    )


def _member_list(raw: dict[str, Any], key: str, owner: str) -> list[Any]:
    value = raw.get(key, [])
    if not isinstance(value, list):
        raise LoaderError(f"{owner}: '{key}' must be a list, got {type(value).__name__}")
    return value


def _parse_class(raw: Any, index: int) -> LoadedClass:
    if not isinstance(raw, dict) or not isinstance(raw.get("name"), str) or not raw["name"]:
        raise LoaderError(f"classes[{index}]: expected an object with a non-empty 'name'")
    name: str = raw["name"].replace("/", ".")

    kind = raw.get("kind")
    if kind is None:
        kind = infer_kind(name)
    elif kind not in CLASS_KINDS:
        raise LoaderError(f"{name}: unknown class kind {kind!r}")

    members = [_parse_member(m, True, name) for m in _member_list(raw, "methods", name)]
    members += [_parse_member(f, False, name) for f in _member_list(raw, "fields", name)]
    return LoadedClass(
        name=name,
        kind=cast(ClassKind, kind),
        public=bool(raw.get("public", True)),
        members=tuple(members),
    )


def parse_classes(data: Any) -> list[LoadedClass]:
    """Parse a decoded class dump."""
    if isinstance(data, dict):
        data = data.get("classes")
    if not isinstance(data, list):
        raise LoaderError("class dump must be a list or an object with a 'classes' list")
    return [_parse_class(raw, i) for i, raw in enumerate(data)]


def load_classes(path: str | Path) -> list[LoadedClass]:
    """Read a JSON class dump from disk."""
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise LoaderError(f"cannot read {path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise LoaderError(f"{path} is not UTF-8 text: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise LoaderError(f"{path} is not valid JSON: {exc}") from exc

    classes = parse_classes(data)
    logger.debug("Loaded %d classes from %s", len(classes), path)
    return classes


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def fuzzy_signature(signature: str) -> str:
    """Replace non-framework reference types with ``X``.

    ``run(Lcom/example/Foo;I)Ljava/lang/String;`` → ``run(XI)Ljava/lang/String;``
    """

    def _sub(match: re.Match[str]) -> str:
        if match.group(1).startswith(FRAMEWORK_PREFIXES):
            return match.group(0)
        return "X"

    return _REF_TYPE_RE.sub(_sub, signature)


def normalize_signature(signature: str, owner: str, *, fuzzy: bool = False) -> str:
    """Drop the declaring class prefix and optionally fuzz app types."""
    for prefix in (owner + ".", owner.replace(".", "/") + "."):
        if signature.startswith(prefix):
            signature = signature[len(prefix) :]
            break
    return fuzzy_signature(signature) if fuzzy else signature


def to_descriptor(cls: LoadedClass, *, public_only: bool = True, fuzzy: bool = False) -> ClassDescriptor:
    signatures = [
        normalize_signature(m.signature, cls.name, fuzzy=fuzzy)
        for m in cls.members
        if not (m.synthetic or m.bridge) and (m.public or not public_only)
    ]
    return make_class_descriptor(cls.package_path, cls.simple_name, signatures, cls.kind)


def to_descriptors(
    classes: Iterable[LoadedClass],
    *,
    public_only: bool = True,
    fuzzy: bool = False,
) -> list[ClassDescriptor]:
    """Convert raw class records into ClassDescriptors.

    Bridge and synthetic members never contribute to the content hash.
    """
    return [to_descriptor(c, public_only=public_only, fuzzy=fuzzy) for c in classes]
