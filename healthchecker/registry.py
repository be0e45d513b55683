from __future__ import annotations

import logging
from pathlib import Path
from typing import List

import yaml
from pydantic import ValidationError

from healthchecker.models import Check, Registry

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Invalid or unreadable check configuration. Fatal at startup."""


def load_registry(path: str | Path) -> List[Check]:
    path = Path(path)
    logger.debug("Loading configuration: %s", path)

    if not path.exists():
        raise ConfigError(f"Missing check configuration at {path}")

    try:
        data = yaml.safe_load(path.read_text())
    except OSError as exc:
        raise ConfigError(f"Error opening config {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Error reading config {path}: {exc}") from exc

    if data is None:
        data = []
    if not isinstance(data, list):
        raise ConfigError(f"{path}: top level must be a list of checks")

    try:
        checks = Registry.model_validate(data).root
    except ValidationError as exc:
        raise ConfigError(f"{path}: invalid check definition\n{exc}") from exc

    if not checks:
        raise ConfigError(f"{path}: no checks configured")

    # Ensure unique names
    seen = set()
    for c in checks:
        if c.name in seen:
            raise ConfigError(f"Duplicate check name: {c.name}")
        seen.add(c.name)

    return checks
