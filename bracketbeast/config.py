"""Client configuration, from the environment or command line."""

import os

from pydantic import BaseModel, Field

ENV_PREFIX = "BINARYBEAST_"


class Settings(BaseModel):
    """Connection settings for the API and the optional result cache"""

    api_key: str | None = None
    api_url: str = "https://binarybeast.com/api"
    # Seconds before an API request is abandoned
    timeout: float = 10.0

    # SQLAlchemy database URL, e.g. "sqlite:///bb_cache.db"; None disables caching
    cache_url: str | None = None
    cache_table: str = "bb_api_cache"
    # Minutes
    cache_ttl: int = Field(default=10, ge=0)

    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        """Read BINARYBEAST_* variables, explicit overrides win"""
        values = {}
        for name in cls.model_fields:
            env_value = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
            if env_value:
                values[name] = env_value
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
