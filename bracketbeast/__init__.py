"""BracketBeast - an object model for the BinaryBeast tournament API."""

from .api import BinaryBeast, BinaryBeastAPI, ResultCache
from .config import Settings
from .models import NOT_FOUND, Match, RemoteModel, Team, Tournament

__version__ = "1.0.0"
__all__ = [
    "BinaryBeast",
    "BinaryBeastAPI",
    "Match",
    "NOT_FOUND",
    "RemoteModel",
    "ResultCache",
    "Settings",
    "Team",
    "Tournament",
]
