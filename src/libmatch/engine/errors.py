"""Error and warning types raised by the engine."""

from __future__ import annotations


class LibMatchError(Exception):
    """Base class for libmatch failures."""


class MalformedPathError(LibMatchError, ValueError):
    """A class descriptor carries an empty or invalid package segment."""

    def __init__(self, class_name: str, package_path: tuple[str, ...], reason: str) -> None:
        self.class_name = class_name
        self.package_path = package_path
        super().__init__(f"Malformed package path {'.'.join(package_path)!r} for {class_name}: {reason}")


class EmptyFingerprintError(LibMatchError):
    """The artifact yielded no classes to fingerprint."""


class MultipleRootsWarning(UserWarning):
    """Classes do not share one common root package."""
