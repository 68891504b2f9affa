"""API module: HTTP transport, result cache and client entry point."""

from .binarybeast_api import BinaryBeastAPI
from .cache import ResultCache, create_cache_engine
from .client import BinaryBeast

__all__ = ["BinaryBeast", "BinaryBeastAPI", "ResultCache", "create_cache_engine"]
