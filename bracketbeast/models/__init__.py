"""Data models for BinaryBeast resources and API responses."""

from .errors import BracketBeastError, ErrorKind, ModelError, ResourceConfigError
from .remote_model import NOT_FOUND, RemoteModel, ResourceConfig, derived
from .response import APIResponse, DictCompatibleBaseModel
from .tournament import Match, Team, Tournament

__all__ = [
    "APIResponse",
    "BracketBeastError",
    "DictCompatibleBaseModel",
    "ErrorKind",
    "Match",
    "ModelError",
    "NOT_FOUND",
    "RemoteModel",
    "ResourceConfig",
    "ResourceConfigError",
    "Team",
    "Tournament",
    "derived",
]
