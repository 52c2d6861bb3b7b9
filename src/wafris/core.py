from __future__ import annotations

from functools import lru_cache
from importlib.resources import files


@lru_cache(maxsize=1)
def load_core_script() -> str:
    """Return the source of the bundled evaluator script."""
    return files("wafris").joinpath("lua/wafris_core.lua").read_text(encoding="utf-8")
