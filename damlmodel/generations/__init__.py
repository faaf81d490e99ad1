"""Module walkers for each supported IR generation."""

from .lf1 import LF1Walker
from .lf2 import LF2Walker

__all__ = ["LF1Walker", "LF2Walker"]
