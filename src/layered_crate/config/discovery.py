"""Locating ``layered-crate.toml``.

The file is looked up the way cargo looks up ``Cargo.toml``: in the start
directory, then in each parent.  ``LAYERED_CRATE_CONFIG`` short-circuits
the search; ``--config`` is handled by the caller.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "layered-crate.toml"
CONFIG_ENV_VAR = "LAYERED_CRATE_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Return the config file governing *start* (default: cwd), or None.

    When ``LAYERED_CRATE_CONFIG`` is set, only that file is considered; a
    missing file there means no config at all.
    """
    forced = os.environ.get(CONFIG_ENV_VAR)
    if forced:
        path = Path(forced)
        return path if path.is_file() else None

    here = (start or Path.cwd()).resolve()
    for directory in (here, *here.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
