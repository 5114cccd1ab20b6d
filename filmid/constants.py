#!/usr/bin/env python3
"""
Shared constants for film identity and short-code mapping

Single source of truth for the code alphabet, code width, and default paths.
DO NOT duplicate these values in other modules - import from here instead.
"""

# Short-code alphabet: digit value == position in this string.
# Order is part of the persisted format; changing it re-labels every code.
CODE_CHARSET = 'abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789'
CODE_BASE = len(CODE_CHARSET)
CODE_CHARSET_DESCRIPTION = 'a-z, A-Z, 0-9 (62 chars)'

# Fixed code width for the mapping store
CODE_LENGTH = 3

# 62^3 = 238,328 distinct codes
MAX_CAPACITY = CODE_BASE ** CODE_LENGTH

# Consecutive occupied codes tolerated before allocation is declared broken
MAX_COLLISION_ATTEMPTS = 1000

# Record fields that may carry a cross-catalog identifier, in priority order
EXTERNAL_ID_FIELDS = ['externalId', 'tmdb_id']

# Default locations (relative to project root)
DEFAULT_CONFIG_PATH = 'config.yaml'
DEFAULT_CORPUS_DIR = 'data/festivals'
DEFAULT_MAPPINGS_PATH = 'public/data/film-key-mappings.json'
DEFAULT_REPORT_PATH = 'output/duplicate_report.csv'

# Source whose cross-catalog matches get prioritized manual review
DEFAULT_FOCUS_SOURCE = 'arthaus'
