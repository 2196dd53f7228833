"""CLI command package"""

from .init import init
from .start import start
from .sweep import sweep

__all__ = ["init", "start", "sweep"]
