from abc import abstractmethod
from typing import Any, Callable, Dict, FrozenSet, Hashable, NoReturn, Optional, Tuple

from ambit import ambit_logging, config
from ambit.power.errors import NoCollection, Powerless, UnknownPower
from ambit.power.power_meta import PowerMeta
from ambit.power.registry import PowerDefinition
from ambit.power.results import ResultKind, classify
from ambit.power.singular import Singularizer
from ambit.power.sql import identity_key

logger = ambit_logging.init_logging("power")


class BasePower(metaclass=PowerMeta):
    """BasePower is an abstract class which provides the functionality common to all power classes. A power class
    declares the permissions of a principal (usually the authenticated user) as named powers. An instance of the
    power class wraps a single principal and answers questions about what that principal may do.

    Declaring Powers
    ----------------

    A power class implements ``_powers`` and declares each power with ``cls._power(name, predicate)``. Each predicate
    receives the power instance followed by any context arguments given by the caller::

        class Power(BasePower):
            @classmethod
            def _powers(cls):
                cls._power("admin?", lambda power: power.principal.admin)
                cls._power("visible_posts", lambda power: session.query(Post).filter_by(published=True))
                cls._power("notes", lambda power, project: project.notes_for(power.principal))

    A predicate may return a boolean, ``None``, a collection (list, set, ...), a SQLAlchemy ``Query`` or any value
    implementing one of the contracts in ``ambit.power.capabilities``. The return value determines how the derived
    methods behave:

    - ``has_visible_posts()`` is true if the query selects at least one record. For a collection, it is true if the
      collection is non-empty. A lazy reference counts as present. Any other value counts as present unless it is
      ``None``, ``False`` or an empty string.
    - ``has_visible_post(post)`` is true if ``post`` is selected by the query (without running any query if the query
      selects all records) or contained in the collection. It is false if the predicate returns ``None`` and raises
      ``NoCollection`` for any other value.
    - ``visible_post_ids()`` returns a frozen set of the identifiers of the selected records. The result is cached per
      set of arguments for the lifetime of the power instance.

    Using the Current Power
    -----------------------

    The power instance of the principal performing the current unit of work (e.g., an HTTP request) can be made
    available to all code running as part of that unit of work::

        with Power.with_power(user):
            ...
            Power.current.require_visible_post(post)

    A thread or asyncio task never observes the current power of another.
    """

    singularizer: Optional[Singularizer] = None

    def __init__(self, principal: Any = None) -> None:
        self.principal = principal

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({getattr(self, 'principal', None)!r})"

    @classmethod
    @abstractmethod
    def _powers(cls) -> None:
        pass

    def include_power(self, power_name: str, *context: Any) -> bool:
        definition = self._lookup_power(power_name)
        return bool(getattr(self, definition.query_name)(*context))

    def require_power(self, power_name: str, *context: Any) -> None:
        definition = self._lookup_power(power_name)
        getattr(self, definition.assertion_name)(*context)

    def include_object(self, power_name: str, *args: Any) -> bool:
        """Checks whether the object given as the last argument is included in a power. The power may be named in
        its plural or singular form.
        """
        definition = self._lookup_power(power_name)

        if definition.boolean_only:
            self._no_collection(definition.name, bool)

        if definition.singular_query_name:
            return bool(getattr(self, definition.singular_query_name)(*args))

        return self._default_include_object(definition.name, *args)

    def require_object(self, power_name: str, *args: Any) -> None:
        if not self.include_object(power_name, *args):
            definition = self._lookup_power(power_name)
            self._powerless(definition.singular or definition.name, *args)

    def power_ids(self, power_name: str, *context: Any) -> FrozenSet[Hashable]:
        definition = self._lookup_power(power_name)

        if not definition.ids_name:
            self._no_collection(definition.name, bool)

        return getattr(self, definition.ids_name)(*context)  # type: ignore[no-any-return]

    def database_touched(self) -> None:
        """Invoked whenever identifiers are extracted from a power's value, i.e. on each call to a ``*_ids`` method
        which is not served from the cache. Does nothing by default.
        """

    def _lookup_power(self, power_name: str) -> PowerDefinition:
        name = power_name[:-1] if power_name.endswith("?") else power_name
        powers = type(self).powers

        if name in powers:
            return powers[name]

        for definition in powers.values():
            if definition.singular == name:
                return definition

        raise UnknownPower(power_name)

    def _default_include_power(self, power_name: str, *context: Any) -> bool:
        kind, value = classify(getattr(self, power_name)(*context))

        if kind is ResultKind.QUERYABLE:
            return not value.is_empty()

        if kind is ResultKind.LAZY_REFERENCE:
            return True

        if kind is ResultKind.COLLECTION or isinstance(value, (str, bytes)):
            return len(value) > 0

        return value is not None and value is not False

    def _default_include_object(self, power_name: str, *args: Any) -> bool:
        if not args:
            raise TypeError(f"checking membership in power '{power_name}' requires an object as the last argument")

        *context, obj = args
        kind, value = classify(getattr(self, power_name)(*context))

        if kind is ResultKind.NIL:
            return False

        if kind is ResultKind.QUERYABLE:
            if value.selects_all_records():
                return True

            ids_name = type(self).powers[power_name].ids_name
            return identity_key(obj) in getattr(self, ids_name)(*context)

        if kind is ResultKind.COLLECTION:
            return obj in value

        self._no_collection(power_name, type(value))

    def _default_power_ids(self, power_name: str, *context: Any) -> FrozenSet[Hashable]:
        kind, value = classify(getattr(self, power_name)(*context))
        self.database_touched()

        if kind is ResultKind.QUERYABLE:
            return frozenset(value.collect_identifiers())

        if kind is ResultKind.COLLECTION:
            return frozenset(identity_key(record) for record in value)

        if kind is ResultKind.NIL:
            return frozenset()

        self._no_collection(power_name, type(value))

    def _memoize(self, power_name: str, args: Tuple[Any, ...], compute: Callable[[], Any]) -> Any:
        key = (power_name, args)

        try:
            hash(key)
        except TypeError:
            logger.debug("Not caching identifiers of power '%s' as its arguments are unhashable", power_name)
            return compute()

        cache: Dict[Tuple[str, Tuple[Any, ...]], Any] = self.__dict__.setdefault("_power_cache", {})

        if key not in cache:
            cache[key] = compute()

        return cache[key]

    def _powerless(self, power_name: str, *args: Any) -> NoReturn:
        if config.getboolean("power", "log_denials", fallback=True):
            logger.warning("Authorization DENIED: power=%s, args=%r, instance=%r", power_name, args, self)

        raise Powerless(power_name, args)

    def _no_collection(self, power_name: str, actual_type: type) -> NoReturn:
        logger.error(
            "Power '%s' of %r is of type '%s' which is not a collection or query", power_name, self, actual_type.__name__
        )
        raise NoCollection(power_name, actual_type)
