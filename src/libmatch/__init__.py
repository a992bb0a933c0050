"""libmatch: structural fingerprints for third-party library detection."""

__version__ = "0.1.0"
