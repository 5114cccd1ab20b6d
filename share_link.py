#!/usr/bin/env python3
"""
share_link.py — Encode/decode shared favorites tokens

Usage:
  python share_link.py encode no-other-land-2024 eden-2014   # → a4g,0zv
  python share_link.py decode a4g,0zv                        # → one key per line
"""

import sys
import logging
import argparse
from pathlib import Path

from filmid.config import load_config
from filmid.constants import DEFAULT_CONFIG_PATH
from filmid.links import decode_film_keys, encode_film_keys
from filmid.store import StoreIntegrityError, load_store

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description='Convert film keys to/from share-link codes')
    parser.add_argument('--config', type=Path, default=Path(DEFAULT_CONFIG_PATH),
                        help='Path to config.yaml')
    parser.add_argument('--mappings', type=Path, default=None,
                        help='Mapping store path (overrides config mappings_path)')
    subparsers = parser.add_subparsers(dest='command', required=True)

    encode_parser = subparsers.add_parser('encode', help='Film keys → code token')
    encode_parser.add_argument('film_keys', nargs='+')

    decode_parser = subparsers.add_parser('decode', help='Code token → film keys')
    decode_parser.add_argument('token')

    args = parser.parse_args()

    try:
        config = load_config(args.config)
        store = load_store(args.mappings or Path(config['mappings_path']))
    except (StoreIntegrityError, ValueError) as e:
        logger.error(str(e))
        return 1

    if args.command == 'encode':
        print(encode_film_keys(args.film_keys, store))
    else:
        for film_key in decode_film_keys(args.token, store):
            print(film_key)
    return 0


if __name__ == '__main__':
    sys.exit(main())
