"""Entry point tying the transport, the result cache and the models together."""

from typing import Any, Mapping

from sqlalchemy import Engine

from ..config import Settings
from ..models.remote_model import Transport
from ..models.response import APIResponse
from ..models.tournament import Match, Team, Tournament
from .binarybeast_api import BinaryBeastAPI
from .cache import ResultCache


class BinaryBeast:
    """Create models that share one transport and (optionally) one cache"""

    def __init__(self, transport: Transport, cache: ResultCache | None = None):
        self.transport = transport
        self.cache = cache

    @classmethod
    def from_settings(
        cls, settings: Settings, engine: Engine | None = None
    ) -> "BinaryBeast":
        """HTTP transport, plus a cache when ``settings.cache_url`` or an
        engine is provided"""
        transport = BinaryBeastAPI(
            api_key=settings.api_key,
            api_url=settings.api_url,
            timeout=settings.timeout,
        )
        cache = None
        if engine is not None or settings.cache_url:
            cache = ResultCache.from_settings(transport, settings, engine)
        return cls(transport, cache)

    def call(
        self,
        service: str,
        args: Mapping[str, Any] | None = None,
        ttl: int | None = None,
        object_type: int | None = None,
        object_id: str | int | None = None,
    ) -> APIResponse:
        """Call a service directly, through the cache if a ttl is given"""
        if ttl is not None and self.cache is not None:
            return self.cache.call(service, args, ttl, object_type, object_id)
        return self.transport.invoke(service, args or {})

    def tournament(self, data: Any = None) -> Tournament:
        return Tournament(self.transport, data, cache=self.cache)

    def team(self, data: Any = None) -> Team:
        return Team(self.transport, data, cache=self.cache)

    def match(self, data: Any = None) -> Match:
        return Match(self.transport, data, cache=self.cache)
