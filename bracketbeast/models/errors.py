"""Error types for the BinaryBeast models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel


class BracketBeastError(Exception):
    """Base exception for programmer errors (bad configuration)"""


class ResourceConfigError(BracketBeastError):
    """A resource class was declared without a usable configuration"""


class ErrorKind(str, Enum):
    MISSING_IDENTITY = "missing_identity"
    NO_SERVICE_DEFINED = "no_service_defined"
    READ_ONLY_VIOLATION = "read_only_violation"
    REMOTE_FAILURE = "remote_failure"
    NOTHING_CHANGED = "nothing_changed"
    STORE_UNAVAILABLE = "store_unavailable"


class ModelError(BaseModel):
    """The last error recorded by a model or cache"""

    kind: ErrorKind
    message: str
    result: Any = None

    def __str__(self) -> str:
        return self.message
