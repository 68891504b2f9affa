"""Tests for the database-backed ResultCache"""

import itertools
import logging
from datetime import datetime, timedelta
from unittest.mock import Mock, patch

import pytest
from sqlalchemy import MetaData, create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import StaticPool

from bracketbeast.api.cache import ResultCache, create_cache_engine
from bracketbeast.config import Settings
from bracketbeast.models.errors import ErrorKind
from bracketbeast.models.response import APIResponse


class FakeClock:
    """Controllable replacement for the cache's clock"""

    def __init__(self):
        self.now = datetime(2024, 3, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: int) -> None:
        self.now += timedelta(minutes=minutes)


def create_memory_engine():
    return create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


def create_counting_transport() -> Mock:
    """Transport mock whose responses carry an increasing call number"""
    counter = itertools.count(1)
    transport = Mock()
    transport.invoke.side_effect = lambda service, args: APIResponse(
        result=200, call=next(counter), service=service
    )
    return transport


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return create_counting_transport()


@pytest.fixture
def cache(transport, clock):
    engine = create_memory_engine()
    yield ResultCache(transport, engine, clock=clock)
    engine.dispose()


@pytest.mark.unit
class TestResultCacheCall:
    """Test call() hits and misses"""

    def test_second_call_within_ttl_is_cached(self, cache, transport, clock):
        """Test that a live entry short-circuits the transport"""
        first = cache.call("Tourney.TourneyLoad.Info", {"tourney_id": "5"}, 10, 0, "5")
        clock.advance(9)
        second = cache.call("Tourney.TourneyLoad.Info", {"tourney_id": "5"}, 10, 0, "5")

        assert transport.invoke.call_count == 1
        assert first.from_cache is False
        assert second.from_cache is True
        assert second.payload == first.payload
        assert second.result == 200

    def test_call_after_ttl_refreshes_entry(self, cache, transport, clock):
        """Test that an expired entry is overwritten, not duplicated"""
        cache.call("svc", {}, 10, 0, "5")
        clock.advance(11)

        refreshed = cache.call("svc", {}, 10, 0, "5")

        assert transport.invoke.call_count == 2
        assert refreshed.from_cache is False
        assert refreshed.get("call") == 2
        assert cache.count() == 1

        cached = cache.call("svc", {}, 10, 0, "5")
        assert cached.from_cache is True
        assert cached.get("call") == 2

    def test_expired_entry_is_kept_until_overwritten(self, cache, clock):
        """Test that reading an expired entry doesn't delete it"""
        cache.call("svc", {}, 1, 0, "5")
        clock.advance(5)

        cache.call("other", {}, 1)

        assert cache.count() == 2

    def test_arguments_are_not_part_of_the_key(self, cache, transport):
        """Test that calls for the same object share an entry"""
        cache.call("svc", {"page": 1}, 10, 0, "5")
        cached = cache.call("svc", {"page": 2}, 10, 0, "5")

        assert transport.invoke.call_count == 1
        assert cached.from_cache is True

    def test_keys_are_distinct_per_discriminator(self, cache, transport):
        """Test that service, object type and object id all separate entries"""
        cache.call("svc", {}, 10)
        cache.call("svc", {}, 10, 0)
        cache.call("svc", {}, 10, 0, "5")
        cache.call("svc", {}, 10, 1, "5")
        cache.call("svc", {}, 10, 0, "6")
        cache.call("other", {}, 10, 0, "5")

        assert transport.invoke.call_count == 6
        assert cache.count() == 6

        assert cache.call("svc", {}, 10).from_cache is True
        assert cache.call("svc", {}, 10, 0).from_cache is True

    def test_missing_discriminators_equal_placeholders(self, cache, transport):
        """Test that lookups compare keys the way the unique index does"""
        cache.call("svc", {}, 10, None, "")
        cached = cache.call("svc", {}, 10, None, None)

        assert cached.from_cache is True
        assert transport.invoke.call_count == 1

        cache.call("other", {}, 10, -1, "5")
        assert cache.call("other", {}, 10, None, "5").from_cache is True

        assert transport.invoke.call_count == 2
        assert cache.count() == 2

    def test_placeholder_key_refreshes_after_ttl(self, cache, transport, clock):
        """Test that an expired placeholder entry is updated in place"""
        cache.call("svc", {}, 10, None, "")
        clock.advance(11)

        refreshed = cache.call("svc", {}, 10, None, None)

        assert refreshed.from_cache is False
        assert cache.count() == 1
        assert cache.call("svc", {}, 10, None, "").get("call") == 2

    def test_integer_object_ids_match_strings(self, cache, transport):
        """Test that object ids are compared as strings"""
        cache.call("svc", {}, 10, 1, 5)

        assert cache.call("svc", {}, 10, 1, "5").from_cache is True
        assert transport.invoke.call_count == 1

    def test_default_ttl(self, transport, clock):
        """Test that ttl=None falls back to the cache's default"""
        cache = ResultCache(transport, create_memory_engine(), default_ttl=30, clock=clock)

        cache.call("svc", {})
        clock.advance(29)
        assert cache.call("svc", {}).from_cache is True

        clock.advance(2)
        assert cache.call("svc", {}).from_cache is False

    def test_caches_share_an_engine(self, transport, clock):
        """Test that two caches on one engine see each other's entries"""
        engine = create_memory_engine()
        first = ResultCache(transport, engine, clock=clock)
        second = ResultCache(transport, engine, clock=clock)

        first.call("svc", {}, 10, 0, "5")
        cached = second.call("svc", {}, 10, 0, "5")

        assert cached.from_cache is True
        assert transport.invoke.call_count == 1

    def test_insert_collision_becomes_update(self, cache):
        """Test that a racing insert for an existing key updates the row"""
        expires = datetime(2030, 1, 1)
        cache._store(None, "svc", 0, "5", APIResponse(result=200, call=1), expires)
        cache._store(None, "svc", 0, "5", APIResponse(result=200, call=2), expires)
        cache._store(None, "svc", None, None, APIResponse(result=200, call=3), expires)
        cache._store(None, "svc", None, None, APIResponse(result=200, call=4), expires)

        assert cache.count() == 2
        assert cache.call("svc", {}, 10, 0, "5").get("call") == 2
        assert cache.call("svc", {}, 10).get("call") == 4

    def test_row_deleted_before_update_is_reinserted(self, cache, clock):
        """Test that a refresh still stores the result if the old row is gone"""
        cache.call("svc", {}, 10, 0, "5")
        clock.advance(11)

        original_invoke = cache.transport.invoke.side_effect

        def invoke_after_cleanup(service, args):
            # Expired row purged while the API call is in flight
            cache.clear_expired()
            return original_invoke(service, args)

        cache.transport.invoke.side_effect = invoke_after_cleanup
        refreshed = cache.call("svc", {}, 10, 0, "5")

        assert refreshed.get("call") == 2
        assert cache.count() == 1
        cached = cache.call("svc", {}, 10, 0, "5")
        assert cached.from_cache is True
        assert cached.get("call") == 2


@pytest.mark.unit
class TestResultCacheClear:
    """Test clear() and clear_expired()"""

    def test_clear_expired_removes_only_expired(self, cache, transport, clock):
        """Test that live entries survive clear_expired()"""
        cache.call("short", {}, 5)
        cache.call("long", {}, 60)
        clock.advance(10)

        assert cache.clear_expired() is True

        assert cache.count() == 1
        assert cache.call("long", {}, 60).from_cache is True
        assert transport.invoke.call_count == 2

    def test_clear_by_object(self, cache):
        """Test clearing all entries for one object"""
        cache.call("Tourney.TourneyLoad.Info", {}, 10, 0, "5")
        cache.call("Tourney.TourneyLoad.Teams", {}, 10, 0, "5")
        cache.call("Tourney.TourneyLoad.Info", {}, 10, 0, "6")

        assert cache.clear(object_type=0, object_id="5") is True

        assert cache.count() == 1
        assert cache.call("Tourney.TourneyLoad.Info", {}, 10, 0, "6").from_cache is True

    def test_clear_by_service(self, cache):
        """Test clearing all entries of one service"""
        cache.call("a", {}, 10, 0, "1")
        cache.call("a", {}, 10, 0, "2")
        cache.call("b", {}, 10, 0, "1")

        cache.clear("a")

        assert cache.count() == 1

    def test_clear_everything(self, cache):
        """Test that clear() with no arguments empties the table"""
        cache.call("a", {}, 10)
        cache.call("b", {}, 10, 1, "2")

        assert cache.clear() is True

        assert cache.count() == 0


@pytest.mark.unit
class TestResultCacheUnavailable:
    """Test that store problems never break API calls"""

    def test_no_engine_disables_cache(self, transport):
        """Test that a cache without an engine passes every call through"""
        cache = ResultCache(transport)

        cache.call("svc", {}, 10)
        response = cache.call("svc", {}, 10)

        assert cache.connected is False
        assert response.from_cache is False
        assert transport.invoke.call_count == 2
        assert cache.clear() is False
        assert cache.clear_expired() is False

    def test_table_creation_failure_disables_cache(self, transport):
        """Test that a broken store is reported as a warning"""
        error = OperationalError("CREATE TABLE", {}, Exception("database is locked"))

        with patch.object(MetaData, "create_all", side_effect=error), patch(
            "bracketbeast.api.cache.log"
        ) as mock_log:
            cache = ResultCache(transport, create_memory_engine())

        assert cache.connected is False
        assert cache.last_error.kind == ErrorKind.STORE_UNAVAILABLE
        assert any(
            call.kwargs.get("level") == logging.WARNING for call in mock_log.call_args_list
        )

        response = cache.call("svc", {"a": 1}, 10)
        assert response.success
        transport.invoke.assert_called_once_with("svc", {"a": 1})

    def test_store_errors_fall_back_to_transport(self, cache, transport):
        """Test that a store failing mid-session degrades to pass-through"""
        with cache.engine.begin() as conn:
            conn.execute(text(f"DROP TABLE {cache.table.name}"))

        with patch("bracketbeast.api.cache.log") as mock_log:
            first = cache.call("svc", {}, 10)
            second = cache.call("svc", {}, 10)

        assert first.get("call") == 1
        assert second.get("call") == 2
        assert second.from_cache is False
        assert any(
            call.kwargs.get("level") == logging.WARNING for call in mock_log.call_args_list
        )

    def test_count_after_table_loss(self, cache):
        """Test that count() reports 0 with a warning instead of raising"""
        cache.call("svc", {}, 10)
        with cache.engine.begin() as conn:
            conn.execute(text(f"DROP TABLE {cache.table.name}"))

        with patch("bracketbeast.api.cache.log") as mock_log:
            assert cache.count() == 0

        assert mock_log.call_args.kwargs.get("level") == logging.WARNING

    def test_unreadable_entry_is_refetched(self, cache, transport):
        """Test that a corrupt cached result is replaced by a live call"""
        cache.call("svc", {}, 10)
        with cache.engine.begin() as conn:
            conn.execute(text(f"UPDATE {cache.table.name} SET result = '[1, 2'"))

        response = cache.call("svc", {}, 10)

        assert response.from_cache is False
        assert transport.invoke.call_count == 2
        assert cache.call("svc", {}, 10).get("call") == 2


@pytest.mark.unit
class TestCacheEngine:
    """Test building the engine from settings"""

    def test_no_cache_url_means_no_engine(self):
        assert create_cache_engine(Settings()) is None

    def test_cache_url_creates_engine(self):
        engine = create_cache_engine(Settings(cache_url="sqlite://"))

        assert engine is not None
        assert engine.dialect.name == "sqlite"
        engine.dispose()

    def test_from_settings(self, transport):
        """Test table name and ttl come from the settings"""
        settings = Settings(cache_url="sqlite://", cache_table="my_cache", cache_ttl=3)

        cache = ResultCache.from_settings(transport, settings)

        assert cache.connected is True
        assert cache.table.name == "my_cache"
        assert cache.default_ttl == 3
        cache.engine.dispose()
