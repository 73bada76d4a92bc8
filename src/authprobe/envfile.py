# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Flat ``KEY=VALUE`` env file loader.

The format is intentionally minimal: one pair per line, split on the first
``=``, both sides stripped. There is no comment, quoting or escaping support
and no multi-line values. Lines whose key or value ends up empty are ignored.
When the env file is missing, a template (``.env.example``) is copied into
place first.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from .errors import ConfigurationMissingError

logger = logging.getLogger(__name__)

DEFAULT_ENV_FILE = ".env"
DEFAULT_ENV_TEMPLATE = ".env.example"


def parse_env_lines(lines: Iterable[str]) -> dict[str, str]:
    """Parse ``KEY=VALUE`` lines; the last definition of a key wins."""
    values: dict[str, str] = {}
    for line in lines:
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        value = value.strip()
        if key and value:
            values[key] = value
    return values


@dataclass(frozen=True)
class EnvConfig(Mapping[str, str]):
    """Read-only view of a parsed env file."""

    values: Mapping[str, str] = field(default_factory=dict)
    source: Path | None = None
    created_from_template: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def __getitem__(self, key: str) -> str:
        return self.values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)


def ensure_env_file(path: str | Path = DEFAULT_ENV_FILE, template: str | Path | None = DEFAULT_ENV_TEMPLATE) -> bool:
    """
    Make sure ``path`` exists, copying ``template`` into place when it does not.

    Returns True when the file was created from the template. Raises
    ConfigurationMissingError when neither file exists or the copy fails.
    """
    env_path = Path(path)
    if env_path.exists():
        return False

    template_path = Path(template) if template is not None else None
    if template_path is None or not template_path.exists():
        raise ConfigurationMissingError(
            str(env_path),
            str(template_path) if template_path is not None else None,
            detail=f"{env_path} not found and template {template_path or '-'} not found",
        )

    try:
        shutil.copyfile(template_path, env_path)
    except OSError as exc:
        raise ConfigurationMissingError(
            str(env_path),
            str(template_path),
            detail=f"Failed to copy {template_path} to {env_path}: {exc}",
        ) from exc

    logger.warning("%s not found, created from %s; review its values before relying on results", env_path, template_path)
    return True


def load_env_file(path: str | Path = DEFAULT_ENV_FILE, template: str | Path | None = DEFAULT_ENV_TEMPLATE) -> EnvConfig:
    """Load the env file at ``path``, falling back to ``template`` when it is missing."""
    env_path = Path(path)
    created = ensure_env_file(env_path, template)
    try:
        text = env_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationMissingError(
            str(env_path),
            str(template) if template is not None else None,
            detail=f"Cannot read {env_path}: {exc}",
        ) from exc
    values = parse_env_lines(text.splitlines())
    logger.debug("Loaded %d keys from %s", len(values), env_path)
    return EnvConfig(values=values, source=env_path, created_from_template=created)


__all__ = [
    "DEFAULT_ENV_FILE",
    "DEFAULT_ENV_TEMPLATE",
    "EnvConfig",
    "ensure_env_file",
    "load_env_file",
    "parse_env_lines",
]
