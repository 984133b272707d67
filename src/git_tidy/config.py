"""Configuration loading and protection policy resolution.

Configuration comes from layered TOML files, lowest precedence first:

1. Built-in defaults (``master``, ``develop``, ``main``)
2. Global config: ``~/.config/git-tidy/config.toml``
3. Project config: ``.git-tidy.toml`` in the repository root

Example::

    [protected_branches]
    defaults = ["main", "develop"]
    additional = ["staging", "release/*"]
    patterns = ["^hotfix/\\d+$"]

Each layer is a value. Merging replaces ``defaults`` and concatenates and
de-duplicates ``additional`` and ``patterns``.
"""

import logging
import re
import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from functools import reduce
from pathlib import Path
from typing import Any, Optional

from git_tidy.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_PROTECTED = ("master", "develop", "main")
GLOBAL_CONFIG = Path(".config") / "git-tidy" / "config.toml"
PROJECT_CONFIG = ".git-tidy.toml"
WILDCARD = "*"

_UNITS = {
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}


@dataclass(frozen=True)
class ProtectedBranches:
    """One configuration layer. ``None`` means the layer does not set the key."""

    defaults: Optional[tuple[str, ...]] = None
    additional: Optional[tuple[str, ...]] = None
    patterns: Optional[tuple[str, ...]] = None

    @property
    def names(self) -> tuple[str, ...]:
        """All protected name entries, wildcard entries included."""
        return (self.defaults or ()) + (self.additional or ())


BUILTIN = ProtectedBranches(defaults=DEFAULT_PROTECTED)


def _merge_lists(base: Optional[tuple[str, ...]], overlay: Optional[tuple[str, ...]]) -> Optional[tuple[str, ...]]:
    if overlay is None:
        return base
    return tuple(sorted(set((base or ()) + overlay)))


def merge_layers(base: ProtectedBranches, overlay: ProtectedBranches) -> ProtectedBranches:
    """Return ``base`` with ``overlay`` applied on top."""
    return ProtectedBranches(
        defaults=overlay.defaults if overlay.defaults is not None else base.defaults,
        additional=_merge_lists(base.additional, overlay.additional),
        patterns=_merge_lists(base.patterns, overlay.patterns),
    )


def resolve_layers(*layers: Optional[ProtectedBranches]) -> ProtectedBranches:
    """Fold layers over the built-in defaults, skipping missing ones."""
    return reduce(merge_layers, (layer for layer in layers if layer is not None), BUILTIN)


def _string_list(data: dict[str, Any], key: str, source: Path) -> Optional[tuple[str, ...]]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"{source}: protected_branches.{key} must be a list of strings")
    return tuple(value)


def parse_layer(data: dict[str, Any], source: Path) -> ProtectedBranches:
    """Build a layer from a parsed TOML document."""
    section = data.get("protected_branches", {})
    if not isinstance(section, dict):
        raise ConfigError(f"{source}: [protected_branches] must be a table")
    return ProtectedBranches(
        defaults=_string_list(section, "defaults", source),
        additional=_string_list(section, "additional", source),
        patterns=_string_list(section, "patterns", source),
    )


def load_layer(path: Path) -> Optional[ProtectedBranches]:
    """Load one config file. Returns None if it does not exist."""
    if not path.exists():
        logger.debug("No config file at %s", path)
        return None
    try:
        with path.open("rb") as fh:
            data = tomllib.load(fh)
    except tomllib.TOMLDecodeError as err:
        raise ConfigError(f"Failed to parse config file {path}: {err}") from err
    except OSError as err:
        raise ConfigError(f"Failed to read config file {path}: {err}") from err
    layer = parse_layer(data, path)
    logger.debug("Loaded config layer from %s: %s", path, layer)
    return layer


def global_config_path() -> Path:
    """Location of the per-user config file."""
    return Path.home() / GLOBAL_CONFIG


def load_config(project_dir: Path) -> ProtectedBranches:
    """Load and merge built-in, global and project configuration."""
    return resolve_layers(
        load_layer(global_config_path()),
        load_layer(project_dir / PROJECT_CONFIG),
    )


def _compile(pattern: str, origin: str) -> re.Pattern[str]:
    try:
        return re.compile(pattern)
    except re.error as err:
        raise ConfigError(f"Invalid regex '{pattern}' in {origin}: {err}") from err


@dataclass(frozen=True)
class ProtectionPolicy:
    """Resolved, immutable branch protection rules for one run."""

    exact_names: frozenset[str] = field(default_factory=frozenset)
    glob_patterns: tuple[str, ...] = ()
    regex_patterns: tuple[re.Pattern[str], ...] = ()
    ad_hoc_pattern: Optional[re.Pattern[str]] = None

    @classmethod
    def build(cls, layer: ProtectedBranches, keep_pattern: Optional[str] = None) -> "ProtectionPolicy":
        """Split name entries into exact names and globs, and compile regexes.

        Raises:
            ConfigError: If a configured pattern or ``keep_pattern`` is not a valid regex
        """
        exact = [name for name in layer.names if WILDCARD not in name]
        globs = [name for name in layer.names if WILDCARD in name]
        regexes = tuple(_compile(p, "protected_branches.patterns") for p in layer.patterns or ())
        ad_hoc = _compile(keep_pattern, "--keep-pattern") if keep_pattern else None
        return cls(
            exact_names=frozenset(exact),
            glob_patterns=tuple(dict.fromkeys(globs)),
            regex_patterns=regexes,
            ad_hoc_pattern=ad_hoc,
        )


def parse_duration(text: str) -> timedelta:
    """Parse ``<integer><unit>`` where unit is one of s, m, h, d, w.

    >>> parse_duration("30d")
    datetime.timedelta(days=30)
    """
    text = text.strip()
    if len(text) < 2:
        raise ValueError(f"Duration too short: '{text}'. Use a number followed by a unit, e.g. 30d")
    number, unit = text[:-1], text[-1]
    if not (number.isascii() and number.isdigit()):
        raise ValueError(f"Invalid number: {number}")
    if unit not in _UNITS:
        raise ValueError(f"Invalid unit: {unit}. Use s, m, h, d, or w")
    try:
        span = timedelta(**{_UNITS[unit]: int(number)})
    except OverflowError:
        raise ValueError(f"Duration too large: {text}") from None
    # the age cutoff is computed as now - span and must stay a valid datetime
    if span > datetime.now(timezone.utc) - datetime.min.replace(tzinfo=timezone.utc):
        raise ValueError(f"Duration too large: {text}")
    return span
