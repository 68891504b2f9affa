"""Cache BinaryBeast API results in a database table.

Results are keyed by service name plus an optional object type / object id
(a missing type equals -1 and a missing id equals ""),
call arguments are NOT part of the key. Entries live for ``ttl`` minutes.

The SQLAlchemy engine is owned by the caller and may be shared by several
caches. Without an engine, or if the table can't be prepared, every call
goes straight to the API.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping

from pydantic import ValidationError
from sqlalchemy import (
    Column,
    DateTime,
    Engine,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    and_,
    create_engine,
    delete,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..config import Settings
from ..models.errors import ErrorKind, ModelError
from ..models.remote_model import Transport
from ..models.response import APIResponse
from ..utils.logging import log

# Stand-ins for a missing object type / id in the cache key
NO_OBJECT_TYPE = -1
NO_OBJECT_ID = ""


def _utcnow() -> datetime:
    # Stored naive, SQLite drops the timezone anyway
    return datetime.now(timezone.utc).replace(tzinfo=None)


def create_cache_engine(settings: Settings) -> Engine | None:
    """Build the cache engine from settings, None if no cache is configured"""
    if not settings.cache_url:
        log("ℹ️  No cache_url configured - API results won't be cached")
        return None
    return create_engine(settings.cache_url)


def _key_columns(table: Table) -> tuple:
    """Key expressions shared by the unique index and every key lookup"""
    return (
        table.c.service,
        func.coalesce(table.c.object_type, NO_OBJECT_TYPE),
        func.coalesce(table.c.object_id, NO_OBJECT_ID),
    )


def build_table(name: str, metadata: MetaData) -> Table:
    table = Table(
        name,
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("service", String(100), nullable=False),
        Column("object_type", Integer, nullable=True),
        Column("object_id", String(50), nullable=True),
        Column("result", Text, nullable=False),
        Column("expires_at", DateTime, nullable=False),
    )
    # NULLs never collide in a plain unique constraint, so the key is
    # enforced over coalesced discriminators
    Index(f"uq_{name}_key", *_key_columns(table), unique=True)
    Index(f"ix_{name}_expires_at", table.c.expires_at)
    Index(f"ix_{name}_object", table.c.object_type, table.c.object_id)
    return table


class ResultCache:
    """Wraps a transport, reusing stored results until they expire"""

    def __init__(
        self,
        transport: Transport,
        engine: Engine | None = None,
        *,
        table_name: str = "bb_api_cache",
        default_ttl: int = 10,
        clock: Callable[[], datetime] | None = None,
    ):
        self.transport = transport
        self.engine = engine
        self.default_ttl = default_ttl
        self.clock = clock or _utcnow
        self.last_error: ModelError | None = None

        self.metadata = MetaData()
        self.table = build_table(table_name, self.metadata)

        self.connected = False
        if engine is not None:
            self._connect()

    @classmethod
    def from_settings(
        cls, transport: Transport, settings: Settings, engine: Engine | None = None
    ) -> "ResultCache":
        if engine is None:
            engine = create_cache_engine(settings)
        return cls(
            transport,
            engine,
            table_name=settings.cache_table,
            default_ttl=settings.cache_ttl,
        )

    def _connect(self) -> None:
        """Create the table if needed, disabling the cache on failure"""
        try:
            self.metadata.create_all(self.engine, checkfirst=True)
        except SQLAlchemyError as e:
            self._store_unavailable(f"Unable to prepare cache table {self.table.name}: {e}")
            return

        self.connected = True
        log(f"✅ Result cache ready ({self.table.name})")

    def _store_unavailable(self, message: str) -> None:
        self.last_error = ModelError(kind=ErrorKind.STORE_UNAVAILABLE, message=message)
        log(f"⚠️  {message} - caching disabled", level=logging.WARNING)

    def _key_clause(
        self, service: str, object_type: int | None, object_id: str | None
    ) -> Any:
        """Exact match on the full key, compared the way the unique index
        compares it: a missing object type or id equals its placeholder"""
        service_col, type_col, id_col = _key_columns(self.table)
        return and_(
            service_col == service,
            type_col == (NO_OBJECT_TYPE if object_type is None else object_type),
            id_col == (NO_OBJECT_ID if object_id is None else object_id),
        )

    def _filter_clause(
        self,
        service: str | None,
        object_type: int | None,
        object_id: str | None,
    ) -> list:
        """Match on whichever discriminators were provided"""
        service_col, type_col, id_col = _key_columns(self.table)
        clauses = []
        if service is not None:
            clauses.append(service_col == service)
        if object_type is not None:
            clauses.append(type_col == object_type)
        if object_id is not None:
            clauses.append(id_col == object_id)
        return clauses

    def call(
        self,
        service: str,
        args: Mapping[str, Any] | None = None,
        ttl: int | None = None,
        object_type: int | None = None,
        object_id: str | int | None = None,
    ) -> APIResponse:
        """Return a cached result for this key if still valid, otherwise call
        the API and store the new result for ``ttl`` minutes"""
        args = args or {}
        ttl = self.default_ttl if ttl is None else ttl
        object_id = None if object_id is None else str(object_id)

        if not self.connected:
            return self.transport.invoke(service, args)

        row_id = None
        now = self.clock()
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    select(
                        self.table.c.id,
                        self.table.c.result,
                        self.table.c.expires_at,
                    ).where(self._key_clause(service, object_type, object_id))
                ).first()
        except SQLAlchemyError as e:
            log(f"⚠️  Cache lookup failed for {service}: {e}", level=logging.WARNING)
            return self.transport.invoke(service, args)

        if row is not None:
            if row.expires_at > now:
                try:
                    cached = APIResponse.model_validate_json(row.result)
                except ValidationError as e:
                    log(
                        f"⚠️  Discarding unreadable cache entry {row.id}: {e}",
                        level=logging.WARNING,
                    )
                else:
                    cached.from_cache = True
                    log(f"📦 Cache hit: {service} {object_type} {object_id}")
                    return cached
            row_id = row.id

        response = self.transport.invoke(service, args)
        self._store(row_id, service, object_type, object_id, response, now + timedelta(minutes=ttl))
        return response

    def _store(
        self,
        row_id: int | None,
        service: str,
        object_type: int | None,
        object_id: str | None,
        response: APIResponse,
        expires_at: datetime,
    ) -> None:
        """Update the existing row or insert a new one, never failing the call"""
        result = response.model_dump_json(exclude={"from_cache"})
        values = {"result": result, "expires_at": expires_at}

        try:
            if row_id is not None:
                with self.engine.begin() as conn:
                    updated = conn.execute(
                        update(self.table).where(self.table.c.id == row_id).values(**values)
                    ).rowcount
                if updated:
                    return
                # Row was deleted since the lookup, insert it again

            try:
                with self.engine.begin() as conn:
                    conn.execute(
                        insert(self.table).values(
                            service=service,
                            object_type=object_type,
                            object_id=object_id,
                            **values,
                        )
                    )
            except IntegrityError:
                # Another caller inserted this key first
                with self.engine.begin() as conn:
                    conn.execute(
                        update(self.table)
                        .where(self._key_clause(service, object_type, object_id))
                        .values(**values)
                    )
        except SQLAlchemyError as e:
            log(f"⚠️  Unable to cache result of {service}: {e}", level=logging.WARNING)

    def clear(
        self,
        service: str | None = None,
        object_type: int | None = None,
        object_id: str | int | None = None,
    ) -> bool:
        """Delete cached results matching any combination of service, object
        type and object id; with no arguments everything is deleted"""
        if not self.connected:
            return False

        object_id = None if object_id is None else str(object_id)
        statement = delete(self.table)
        clauses = self._filter_clause(service, object_type, object_id)
        if clauses:
            statement = statement.where(and_(*clauses))

        try:
            with self.engine.begin() as conn:
                deleted = conn.execute(statement).rowcount
        except SQLAlchemyError as e:
            log(f"⚠️  Unable to clear cache: {e}", level=logging.WARNING)
            return False

        log(f"🧹 Cleared {deleted} cached result(s)")
        return True

    def clear_expired(self) -> bool:
        """Delete every entry whose expiry has passed"""
        if not self.connected:
            return False

        try:
            with self.engine.begin() as conn:
                deleted = conn.execute(
                    delete(self.table).where(self.table.c.expires_at <= self.clock())
                ).rowcount
        except SQLAlchemyError as e:
            log(f"⚠️  Unable to clear expired cache entries: {e}", level=logging.WARNING)
            return False

        log(f"🧹 Cleared {deleted} expired cached result(s)")
        return True

    def count(self) -> int:
        """Number of stored entries, expired ones included"""
        if not self.connected:
            return 0
        try:
            with self.engine.connect() as conn:
                return conn.execute(
                    select(func.count()).select_from(self.table)
                ).scalar_one()
        except SQLAlchemyError as e:
            log(f"⚠️  Unable to count cache entries: {e}", level=logging.WARNING)
            return 0
