#!/usr/bin/env python3
"""
filmid/config.py — YAML configuration with defaults

config.yaml keys (all optional):
    corpus_dir:          data/festivals
    mappings_path:       public/data/film-key-mappings.json
    report_path:         output/duplicate_report.csv
    focus_source:        arthaus
    external_id_fields:  [externalId, tmdb_id]
    merges:              {duplicate-key-2021: canonical-key-2021}
"""

import copy
import logging
from pathlib import Path
from typing import Dict

import yaml

from filmid.constants import (
    DEFAULT_CORPUS_DIR,
    DEFAULT_FOCUS_SOURCE,
    DEFAULT_MAPPINGS_PATH,
    DEFAULT_REPORT_PATH,
    EXTERNAL_ID_FIELDS,
)

logger = logging.getLogger(__name__)

DEFAULTS = {
    'corpus_dir': DEFAULT_CORPUS_DIR,
    'mappings_path': DEFAULT_MAPPINGS_PATH,
    'report_path': DEFAULT_REPORT_PATH,
    'focus_source': DEFAULT_FOCUS_SOURCE,
    'external_id_fields': EXTERNAL_ID_FIELDS,
    'merges': {},
}


def load_config(config_path: Path) -> Dict:
    """
    Load configuration from YAML file, filling in defaults.

    A missing file yields the defaults.

    Raises:
        ValueError: If the file is not valid YAML or not a mapping.
    """
    config = copy.deepcopy(DEFAULTS)

    config_path = Path(config_path)
    if not config_path.exists():
        logger.info(f"Config not found at {config_path}, using defaults")
        return config

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        return config
    if not isinstance(data, dict):
        raise ValueError(f"Config {config_path} must be a mapping, got {type(data).__name__}")

    config.update(data)

    if not isinstance(config['external_id_fields'], list):
        raise ValueError("external_id_fields must be a list")
    if config['merges'] is None:
        config['merges'] = {}
    if not isinstance(config['merges'], dict):
        raise ValueError("merges must be a mapping of duplicate key → canonical key")

    return config
