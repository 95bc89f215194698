"""
Checks applied to configuration files before their settings are used.

The TOML layout carries a ``[schema] version``. Files written for a different
major version are refused; a newer minor version is read with a warning.
"""

from __future__ import annotations

import logging
import re

from .exceptions import IncompatibleSchemaError, ValidationError

logger = logging.getLogger(__name__)

__all__ = [
    "SCHEMA_VERSION",
    "check_schema_version",
    "find_unknown_keys",
    "parse_semver",
]

# Version of the TOML layout understood by this loader
SCHEMA_VERSION = "1.0.0"

_SEMVER = re.compile(r"(\w+)\.(\w+)\.(\w+)")


def parse_semver(version: str) -> tuple[int, int, int]:
    """
    Split a ``MAJOR.MINOR.PATCH`` version into integers.

    Raises
    ------
    ValidationError
        If ``version`` does not have three integer parts

    Examples
    --------
    >>> parse_semver("1.2.3")
    (1, 2, 3)
    """
    match = _SEMVER.fullmatch(version)
    if match is None:
        msg = f"Invalid semver format: '{version}' (expected 'MAJOR.MINOR.PATCH')"
        raise ValidationError(msg)
    if not all(part.isdigit() for part in match.groups()):
        msg = f"Invalid semver format: '{version}' (non-integer component)"
        raise ValidationError(msg)
    major, minor, patch = (int(part) for part in match.groups())
    return major, minor, patch


def check_schema_version(
    config_version: str, loader_version: str = SCHEMA_VERSION
) -> None:
    """
    Refuse configuration files written for another major schema version.

    Raises
    ------
    IncompatibleSchemaError
        If the major versions differ
    ValidationError
        If either version is malformed
    """
    file_major, file_minor, _ = parse_semver(config_version)
    our_major, our_minor, _ = parse_semver(loader_version)

    if file_major != our_major:
        raise IncompatibleSchemaError(config_version, loader_version)
    if file_minor > our_minor:
        logger.warning(
            f"Configuration schema version {config_version} is newer than "
            f"loader version {loader_version}; newer keys may be ignored"
        )


def find_unknown_keys(data: dict[str, object], known_keys: set[str]) -> list[str]:
    """
    Return the keys of ``data`` missing from ``known_keys``, sorted.

    Examples
    --------
    >>> find_unknown_keys({"core": {}, "magic": {}}, {"core"})
    ['magic']
    """
    return sorted(key for key in data if key not in known_keys)
