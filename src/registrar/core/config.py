"""Config loading utilities for registrar."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel

from registrar.core.models import (
    AllocationConfig,
    BackfillConfig,
    RegistrarConfig,
    StorageConfig,
)

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "registrar.yaml"
MONGODB_URI_ENV = "MONGODB_URI"

_SECTIONS: dict[str, type[BaseModel]] = {
    "storage": StorageConfig,
    "allocation": AllocationConfig,
    "backfill": BackfillConfig,
}


def load_config_file(path: Path) -> dict[str, Any]:
    """Load a registrar.yaml file as a dict.

    Returns empty dict if the file doesn't exist.
    """
    if not path.exists():
        logger.debug("No config found at %s; using defaults", path)
        return {}

    logger.info("Loading config from %s", path)
    with path.open() as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        logger.warning("%s did not contain a mapping; using defaults", path.name)
        return {}

    return data


def _section(raw: dict[str, Any], name: str, model: type[BaseModel]) -> dict[str, Any]:
    section = raw.get(name, {})
    if not isinstance(section, dict):
        logger.warning("'%s' key is not a mapping; ignoring", name)
        return {}

    # Unknown keys are dropped rather than failing validation.
    valid_fields = model.model_fields
    filtered = {k: v for k, v in section.items() if k in valid_fields}

    if dropped := set(section) - set(filtered):
        logger.warning("Ignoring unknown %s config keys: %s", name, sorted(dropped))

    return filtered


def make_config(raw: dict[str, Any]) -> RegistrarConfig:
    """Build a RegistrarConfig from registrar.yaml values.

    Only fields present in *raw* override the defaults. ``MONGODB_URI`` in the
    environment wins over ``storage.mongo_uri``.
    """
    sections = {name: _section(raw, name, model) for name, model in _SECTIONS.items()}

    if env_uri := os.environ.get(MONGODB_URI_ENV):
        sections["storage"]["mongo_uri"] = env_uri

    return RegistrarConfig.model_validate(sections)


def load_config(path: Path) -> RegistrarConfig:
    return make_config(load_config_file(path))
