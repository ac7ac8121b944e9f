#!/usr/bin/env python3
"""Dump the PhotoGuess HTTP API schema to openapi/openapi.yaml for client code generation."""

from __future__ import annotations

from pathlib import Path

import yaml

from photoguess.main import app

REPO_ROOT = Path(__file__).resolve().parent.parent
OUTPUT_PATH = REPO_ROOT / 'openapi' / 'openapi.yaml'

HEADER = (
    '# PhotoGuess HTTP API schema, written by scripts/generate_openapi.py.\n'
    '# Change the routers or schemas instead, then rerun the script.\n'
)


def main():
    schema = app.openapi()
    OUTPUT_PATH.parent.mkdir(parents=True, exist_ok=True)
    with open(OUTPUT_PATH, 'w') as f:
        f.write(HEADER)
        yaml.dump(schema, f, default_flow_style=False, sort_keys=False)
    print(f'Wrote API schema to {OUTPUT_PATH}')


if __name__ == '__main__':
    main()
