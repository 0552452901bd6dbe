"""Front-end pipeline glue for parsing and scope analysis."""

from .cache import ScopeCache
from .pipeline import FrontEndResult, run_frontend

__all__ = ["FrontEndResult", "ScopeCache", "run_frontend"]
