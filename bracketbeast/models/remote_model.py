"""Base class for the BinaryBeast resource models (tournaments, teams, matches).

A model is a local view of one remote object. Values are resolved in this
order:

    pending edits (set() but not yet saved)
    default values (new objects only)
    loaded data (loaded on first access if the object has an id)
    @derived accessors defined by the resource class

Writes only ever land in the pending edits, and are sent to the API by save().
Expected failures never raise: the operation returns False and the reason is
available from error().
"""

import copy
import logging
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Mapping, Protocol

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils.helpers import translate_result
from ..utils.logging import log
from .errors import ErrorKind, ModelError, ResourceConfigError
from .response import APIResponse

if TYPE_CHECKING:
    from ..api.cache import ResultCache


class Transport(Protocol):
    """Anything that can call a BinaryBeast service"""

    def invoke(self, service: str, args: Mapping[str, Any]) -> APIResponse: ...


class _NotFound:
    """Returned by RemoteModel.get() for names it can't resolve"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND = _NotFound()


class ResourceConfig(BaseModel):
    """Per-resource-type settings: identity field, services, defaults"""

    model_config = ConfigDict(frozen=True)

    id_field: str
    service_load: str | None = None
    service_create: str | None = None
    service_update: str | None = None
    service_delete: str | None = None
    # Lists child objects (e.g. the teams of a tournament)
    service_list: str | None = None

    defaults: dict[str, Any] = Field(default_factory=dict)
    read_only: frozenset[str] = frozenset()

    # Load responses wrap the object under this key, e.g. "tourney_info"
    extraction_key: str | None = None

    # Cache discriminator, see ResultCache
    object_type: int | None = None
    # Minutes to keep load() results in the cache, None disables caching
    cache_ttl: int | None = None

    @field_validator("id_field")
    @classmethod
    def _id_field_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("id_field must not be empty")
        return value


def derived(method: Callable) -> Callable:
    """Mark a zero-argument method as resolvable through RemoteModel.get()"""
    method._derived = True
    return method


class RemoteModel:
    """A single remote object with lazy loading and deferred writes"""

    config: ClassVar[ResourceConfig | None] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if cls.config is not None and not isinstance(cls.config, ResourceConfig):
            raise ResourceConfigError(
                f"{cls.__name__}.config must be a ResourceConfig, "
                f"got {type(cls.config).__name__}"
            )

    def __init__(
        self,
        transport: Transport,
        data: Any = None,
        *,
        cache: "ResultCache | None" = None,
    ):
        if self.config is None:
            raise ResourceConfigError(
                f"{type(self).__name__} does not define a ResourceConfig"
            )

        self.transport = transport
        self.cache = cache

        self.identity: str | int | None = None
        self._data: dict[str, Any] = {}
        self._new_data: dict[str, Any] = {}

        # Result code of the previous call, and its translation
        self.result: int | str | None = None
        self.result_friendly: Any = None
        self.last_error: ModelError | None = None

        if isinstance(data, (str, int)) and not isinstance(data, bool):
            # Just an id, values are loaded when first accessed
            self.set_id(data)
        elif data is not None:
            self.import_values(data)
            self.extract_id()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.config.id_field}={self.identity!r}>"

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    @property
    def id(self) -> str | int | None:
        return self.identity

    @property
    def changed(self) -> bool:
        """True if there are unsaved changes"""
        return bool(self._new_data)

    @property
    def read_only_fields(self) -> frozenset[str]:
        return self.config.read_only | {self.config.id_field}

    def get(self, name: str, default: Any = NOT_FOUND) -> Any:
        """Resolve a value by name, loading the object first if necessary.

        Unknown names return ``default`` (NOT_FOUND unless given); returned
        containers are copies so they can't be used to edit the model.
        """
        return self._resolve(name, default, allow_load=True)

    def _resolve(self, name: str, default: Any, allow_load: bool) -> Any:
        if name == self.config.id_field and self.identity is not None:
            return self.identity

        if name in self._new_data:
            return copy.copy(self._new_data[name])

        if self.identity is None:
            if name in self.config.defaults:
                return copy.copy(self.config.defaults[name])
        elif not self._data:
            if allow_load:
                self.load()
                return self._resolve(name, default, allow_load=False)
        elif name in self._data:
            return copy.copy(self._data[name])

        # "id" is shorthand for the identity unless the object has its own id
        if name == "id" and self.identity is not None:
            return self.identity

        accessor = getattr(type(self), name, None)
        if callable(accessor) and getattr(accessor, "_derived", False):
            return getattr(self, name)()

        return default

    def set(self, name: str, value: Any) -> bool:
        """Stage a new value, sent to the API on the next save()"""
        if name in self.read_only_fields:
            self._set_error(
                ErrorKind.READ_ONLY_VIOLATION, f"{name} is a read-only property"
            )
            return False

        self._new_data[name] = value
        return True

    def reset(self) -> None:
        """Discard unsaved changes"""
        self._new_data = {}

    def pending_edits(self) -> dict[str, Any]:
        """Values changed since the last load() / save()"""
        return dict(self._new_data)

    def merged_view(self) -> dict[str, Any]:
        """Current values (or defaults for new objects) plus unsaved changes"""
        base = self.config.defaults if self.identity is None else self._data
        return {**copy.deepcopy(base), **self._new_data}

    def sync_changes(self) -> None:
        """Accept unsaved changes as the object's values without calling the API.

        Used after a successful save(), and by parents that update their
        children in one batch request.
        """
        self._data = self.merged_view()
        self._new_data = {}

    def import_values(self, data: Any) -> None:
        """Replace the loaded values, unwrapping the extraction key if present"""
        values = self._as_dict(data)

        key = self.config.extraction_key
        if key is not None and key in values and values[key] is not None:
            values = self._as_dict(values[key])

        self._data = values
        self._new_data = {}

    @staticmethod
    def _as_dict(data: Any) -> dict[str, Any]:
        if isinstance(data, APIResponse):
            return data.payload
        if isinstance(data, BaseModel):
            return data.model_dump()
        if isinstance(data, Mapping):
            return dict(data)
        if hasattr(data, "__dict__"):
            return dict(vars(data))
        raise TypeError(f"Can't import values from {type(data).__name__}")

    def set_id(self, identity: str | int | None) -> None:
        self.identity = identity

    def extract_id(self) -> bool:
        """Take the id from the imported values, True if found"""
        identity = self._data.get(self.config.id_field)
        if identity is None:
            return False
        self.set_id(identity)
        return True

    def load(
        self,
        identity: str | int | None = None,
        extra_args: Mapping[str, Any] | None = None,
    ) -> "RemoteModel | bool":
        """Load this object's values from the API.

        Returns the model itself so calls can be chained, or False on failure.
        """
        if identity is not None:
            self.reset()
            self.set_id(identity)

        if self.identity is None:
            return self._fail(
                ErrorKind.MISSING_IDENTITY,
                f"No {self.config.id_field} was provided, there is nothing to load!",
            )

        service = self.config.service_load
        if not service:
            return self._fail(
                ErrorKind.NO_SERVICE_DEFINED,
                f"{type(self).__name__} does not define a load service",
            )

        args = {self.config.id_field: self.identity, **(extra_args or {})}
        response = self._call(service, args, cacheable=True)

        if response.success:
            self.import_values(response)
            log(
                f"✅ Loaded {type(self).__name__} {self.identity}"
                f"{' (from cache)' if response.from_cache else ''}"
            )
            return self

        return self._fail_remote(response)

    def save(
        self,
        return_result: bool = False,
        extra_args: Mapping[str, Any] | None = None,
    ) -> Any:
        """Create or update this object.

        Returns the object's id (or the raw response if ``return_result``),
        True if there was nothing to save, or False on failure.
        """
        identity = self.identity

        if identity is not None:
            if not self.changed:
                self._set_error(
                    ErrorKind.NOTHING_CHANGED,
                    "You have not changed any values to submit!",
                )
                return True
            service = self.config.service_update
        else:
            service = self.config.service_create

        if not service:
            return self._fail(
                ErrorKind.NO_SERVICE_DEFINED,
                f"{type(self).__name__} does not define a "
                f"{'update' if identity is not None else 'create'} service",
            )

        if identity is not None:
            args = {**self._new_data, self.config.id_field: identity}
        else:
            # Defaults become the base values once created
            self._data = copy.deepcopy(self.config.defaults)
            args = {**self._data, **self._new_data}

        if extra_args:
            args.update(extra_args)

        response = self._call(service, args)
        if not response.success:
            return self._fail_remote(response)

        if identity is None:
            identity = response.get(self.config.id_field)
            if identity is None:
                log(
                    f"⚠️  {service} succeeded without returning a {self.config.id_field}",
                    level=logging.WARNING,
                )
            else:
                self.set_id(identity)
                log(f"✅ Created {type(self).__name__} {identity}")

        self.sync_changes()
        self._clear_cached(identity)

        if return_result:
            return response
        return identity

    def delete(self) -> bool:
        """Delete this object remotely, leaving the instance empty"""
        if self.identity is None:
            return self._fail(
                ErrorKind.MISSING_IDENTITY,
                f"No {self.config.id_field} was provided, there is nothing to delete!",
            )

        service = self.config.service_delete
        if not service:
            return self._fail(
                ErrorKind.NO_SERVICE_DEFINED,
                f"{type(self).__name__} does not define a delete service",
            )

        response = self._call(service, {self.config.id_field: self.identity})
        if not response.success:
            return self._fail_remote(response)

        log(f"🗑️  Deleted {type(self).__name__} {self.identity}")
        self._clear_cached(self.identity)
        self.set_id(None)
        self._data = {}
        self._new_data = {}
        self.clear_error()
        return True

    def wrap_list(self, items: list, cls: "type[RemoteModel] | None" = None) -> list:
        """Instantiate a model for each object in an API list"""
        cls = cls or type(self)
        return [cls(self.transport, item, cache=self.cache) for item in items]

    def error(self) -> ModelError | None:
        return self.last_error

    def clear_error(self) -> None:
        self.last_error = None

    def _call(
        self, service: str, args: Mapping[str, Any], cacheable: bool = False
    ) -> APIResponse:
        """Call the API and record the result code"""
        self.clear_error()

        if cacheable and self.cache is not None and self.config.cache_ttl:
            response = self.cache.call(
                service,
                args,
                self.config.cache_ttl,
                self.config.object_type,
                self.identity,
            )
        else:
            response = self.transport.invoke(service, args)

        self.result = response.result
        self.result_friendly = translate_result(response.result)
        return response

    def _clear_cached(self, identity: str | int | None) -> None:
        if self.cache is not None and identity is not None:
            self.cache.clear(
                object_type=self.config.object_type, object_id=identity
            )

    def _set_error(self, kind: ErrorKind, message: str, result: Any = None) -> None:
        self.last_error = ModelError(kind=kind, message=message, result=result)

    def _fail(self, kind: ErrorKind, message: str) -> bool:
        self._set_error(kind, message)
        log(f"❌ {type(self).__name__}: {message}")
        return False

    def _fail_remote(self, response: APIResponse) -> bool:
        self._set_error(
            ErrorKind.REMOTE_FAILURE,
            str(translate_result(response.result)),
            result=response.result,
        )
        log(
            f"❌ {type(self).__name__} {self.identity}: "
            f"{response.result} - {self.last_error.message}"
        )
        return False
