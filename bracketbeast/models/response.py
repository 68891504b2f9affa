"""Pydantic models for BinaryBeast API responses."""

from typing import Any

from pydantic import BaseModel

from ..utils.helpers import RESULT_SUCCESS, translate_result


class DictCompatibleBaseModel(BaseModel):
    """Custom BaseModel with dictionary-style access"""

    def __getitem__(self, key: str) -> Any:
        """Allow dictionary-style access"""
        return getattr(self, key)

    def __setitem__(self, key: str, value: Any) -> None:
        """Allow dictionary-style assignment"""
        setattr(self, key, value)

    def __contains__(self, key: str) -> bool:
        return key in type(self).model_fields or key in (self.model_extra or {})

    def get(self, key: str, default: Any = None) -> Any:
        """Allow .get() method like dictionaries"""
        return getattr(self, key, default)

    model_config = {"extra": "allow"}


class APIResponse(DictCompatibleBaseModel):
    """A BinaryBeast service response.

    BinaryBeast returns the result code next to the payload fields, e.g.
    ``{"result": 200, "tourney_id": "xSC21212194"}`` or
    ``{"result": 200, "tourney_info": {...}}``, so everything other than
    ``result`` is kept as extra fields.
    """

    result: int | str | None = None
    # Set by ResultCache when the response came from the store
    from_cache: bool = False

    @property
    def success(self) -> bool:
        try:
            return int(self.result) == RESULT_SUCCESS
        except (TypeError, ValueError):
            return False

    @property
    def result_friendly(self) -> Any:
        return translate_result(self.result)

    @property
    def payload(self) -> dict[str, Any]:
        """Everything except the result code and cache marker"""
        return dict(self.model_extra or {})
