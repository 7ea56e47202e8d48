"""Instance loaders for TSPLIB and AMPL ``.dat`` files."""
from __future__ import annotations

import os

from ..errors import InvalidInstanceError
from ..instance import Instance
from .ampl_dat import parse_tsp_dat, read_ampl_dat
from .tsplib import parse_tsplib, read_tsplib

__all__ = ['load_instance', 'parse_tsp_dat', 'read_ampl_dat', 'parse_tsplib', 'read_tsplib']


def load_instance(path: str) -> Instance:
    """Load ``path`` by extension: ``.tsp`` / ``.atsp`` as TSPLIB, ``.dat`` as AMPL."""
    ext = os.path.splitext(path)[1].lower()
    if ext in ('.tsp', '.atsp'):
        return read_tsplib(path)
    if ext == '.dat':
        return read_ampl_dat(path)
    raise InvalidInstanceError(f"Unknown instance format {ext!r} for {path}")
