from abc import ABCMeta
from contextlib import contextmanager
from types import MappingProxyType
from typing import Any, Callable, Dict, Generator, Mapping, Optional

from ambit import ambit_logging
from ambit.power.context import ContextSlot
from ambit.power.errors import PowerDefinitionInvalid, PowerNotSingularizable
from ambit.power.registry import PowerDefinition, PowerRegistry
from ambit.power.singular import Singularizer, get_singularizer, singular_form

logger = ambit_logging.init_logging("power")


class WithdrawnMethod:
    """Hides a method inherited from a base power class after the power it was derived from is redeclared in a way
    which does not derive it (e.g., a collection power redeclared as boolean-only).
    """

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r})"

    def __get__(self, instance: Any, owner: type) -> Any:
        raise AttributeError(f"power method '{self.name}' of '{owner.__name__}' was withdrawn by a redeclaration")


class PowerMeta(ABCMeta):
    """PowerMeta builds the methods of a power class from its power declarations. All classes which inherit from
    ``BasePower`` are instances of PowerMeta. Instance members of the meta class become class members of the power
    class, so any method not marked as a ``@staticmethod`` or ``@classmethod`` is accessible directly on the power
    class (e.g., ``Power.with_power(user)``).

    Declaration Helpers
    -------------------

    Powers are declared inside the ``_powers`` class method of a power class by calling ``cls._power(name,
    predicate)``. The predicate is invoked as ``predicate(power, *context)``. From each declaration, the following
    methods are derived (shown for ``visible_posts``):

    - ``visible_posts(*context)``: the predicate itself
    - ``has_visible_posts(*context)``: whether the power's value is present/non-empty
    - ``require_visible_posts(*context)``: raises ``Powerless`` unless ``has_visible_posts`` is true
    - ``visible_post_ids(*context)``: the identifiers of the records in the power's value (memoized per instance)
    - ``has_visible_post(*context, post)``: whether ``post`` is in the power's value
    - ``require_visible_post(*context, post)``: raises ``Powerless`` unless ``has_visible_post`` is true

    The singular methods are only derived if the name has a singular form which differs from the name. A name ending
    in "?" (e.g., ``admin?``) declares a boolean power, from which only ``has_admin`` and ``require_admin`` are derived.

    The Lifecycle of a Power Class
    ------------------------------

    When a new power class is created, ``PowerMeta.__new__(...)`` gives it an empty registry of powers and its own
    context slot. The declarations are processed by ``Power.process_powers()``, which is invoked automatically when
    the class is first instantiated, when ``Power.powers`` is first accessed, or when a missing attribute is looked up
    on the class. Afterward, the declaration helpers are disabled.
    """

    # pylint: disable=bad-staticmethod-argument, no-value-for-parameter

    @classmethod
    def _is_power_class(mcs, cls: type) -> bool:  # type: ignore[reportSelfClassParameterName]
        return issubclass(type(cls), PowerMeta)

    @classmethod
    def _get_powers_method(mcs, cls: "PowerMeta") -> Callable[[], None]:  # type: ignore[reportSelfClassParameterName]
        if not mcs._is_power_class(cls):
            raise TypeError(f"class '{cls.__name__}' is not a power class")

        powers_method = getattr(cls, "_powers", None)

        if not powers_method:
            raise TypeError(f"no _powers method present in class '{cls.__name__}'")

        if not callable(powers_method):
            raise TypeError(f"member '_powers' of class '{cls.__name__}' not callable")

        return powers_method  # type: ignore[no-any-return]

    @classmethod
    def _is_implementation(mcs, cls: "PowerMeta") -> bool:  # type: ignore[reportSelfClassParameterName]
        # An abstract power class (e.g., BasePower) leaves _powers abstract while an implementation defines it
        is_abstract = getattr(mcs._get_powers_method(cls), "__isabstractmethod__", False)
        return bool(not is_abstract)

    @classmethod
    def _getattr(mcs, cls: "PowerMeta", name: str, *args: Any) -> Any:  # type: ignore[reportSelfClassParameterName]
        if not mcs._is_implementation(cls):
            raise TypeError(f"cannot get power attribute '{name}' for abstract class '{cls.__name__}'")

        if name.startswith("__"):
            name = f"_{cls.__name__}{name}"

        return getattr(cls, name, *args)

    @classmethod
    def _setattr(mcs, cls: "PowerMeta", name: str, value: Any) -> None:  # type: ignore[reportSelfClassParameterName]
        if not mcs._is_implementation(cls):
            raise TypeError(f"cannot set power attribute '{name}' for abstract class '{cls.__name__}'")

        if name.startswith("__"):
            name = f"_{cls.__name__}{name}"

        setattr(cls, name, value)

    @staticmethod
    def __named(func: Callable[..., Any], cls: "PowerMeta", name: str) -> Callable[..., Any]:
        func.__name__ = name
        func.__qualname__ = f"{cls.__qualname__}.{name}"
        return func

    @staticmethod
    def __raw_method(predicate: Callable[..., Any]) -> Callable[..., Any]:
        def raw(self: Any, *context: Any) -> Any:
            return predicate(self, *context)

        raw.__doc__ = getattr(predicate, "__doc__", None)
        return raw

    @staticmethod
    def __query_method(power_name: str) -> Callable[..., bool]:
        def query(self: Any, *context: Any) -> bool:
            return self._default_include_power(power_name, *context)  # type: ignore[no-any-return]

        return query

    @staticmethod
    def __include_object_method(power_name: str) -> Callable[..., bool]:
        def include_object(self: Any, *args: Any) -> bool:
            return self._default_include_object(power_name, *args)  # type: ignore[no-any-return]

        return include_object

    @staticmethod
    def __assertion_method(query_name: str, power_name: str) -> Callable[..., None]:
        def assertion(self: Any, *args: Any) -> None:
            if not getattr(self, query_name)(*args):
                self._powerless(power_name, *args)

        return assertion

    @staticmethod
    def __ids_method(power_name: str) -> Callable[..., Any]:
        def ids(self: Any, *context: Any) -> Any:
            return self._memoize(power_name, context, lambda: self._default_power_ids(power_name, *context))

        return ids

    @classmethod
    def _make_power(mcs, cls: "PowerMeta", name: str, predicate: Callable[..., Any]) -> PowerDefinition:  # type: ignore[reportSelfClassParameterName]
        if not isinstance(name, str) or not name:
            raise PowerDefinitionInvalid(f"power name for '{cls.__name__}' must be a non-empty string, not {name!r}")

        boolean_only = name.endswith("?")
        power_name = name[:-1] if boolean_only else name

        if not power_name.isidentifier():
            raise PowerDefinitionInvalid(f"power name '{name}' for '{cls.__name__}' is not a valid identifier")

        if not callable(predicate):
            raise PowerDefinitionInvalid(f"predicate for power '{name}' of '{cls.__name__}' is not callable")

        methods: Dict[str, Callable[..., Any]] = {}
        singular = None
        ids_name = None

        if boolean_only:
            methods[f"has_{power_name}"] = mcs.__raw_method(predicate)
            methods[f"require_{power_name}"] = mcs.__assertion_method(f"has_{power_name}", power_name)
        else:
            methods[power_name] = mcs.__raw_method(predicate)
            methods[f"has_{power_name}"] = mcs.__query_method(power_name)
            methods[f"require_{power_name}"] = mcs.__assertion_method(f"has_{power_name}", power_name)

            singular = singular_form(cls.get_singularizer(), power_name)
            ids_name = f"{singular or power_name}_ids"
            methods[ids_name] = mcs.__ids_method(power_name)

            if singular:
                methods[f"has_{singular}"] = mcs.__include_object_method(power_name)
                methods[f"require_{singular}"] = mcs.__assertion_method(f"has_{singular}", singular)
            else:
                logger.debug("Power '%s' of '%s' has no singular form, skipping membership methods", name, cls.__name__)

        definition = PowerDefinition(
            name=power_name,
            predicate=predicate,
            boolean_only=boolean_only,
            singular=singular,
            ids_name=ids_name,
            derived=frozenset(methods),
        )

        previous = mcs._getattr(cls, "__registry").declare(definition)
        stale_names = set(previous.derived if previous else ())

        for base in cls.__mro__[1:]:
            if mcs._is_power_class(base) and mcs._is_implementation(base):
                inherited = mcs._getattr(base, "__registry").get(power_name)

                if inherited:
                    stale_names |= inherited.derived
                    break

        # Methods of an overridden declaration which the new declaration does not replace must not stay reachable
        for stale_name in stale_names - definition.derived:
            if stale_name in vars(cls):
                delattr(cls, stale_name)

            if any(stale_name in vars(base) for base in cls.__mro__[1:]):
                setattr(cls, stale_name, WithdrawnMethod(stale_name))

        for method_name, method in methods.items():
            mcs._setattr(cls, method_name, mcs.__named(method, cls, method_name))

        logger.debug("Declared power '%s' for '%s' with methods %s", name, cls.__name__, sorted(methods))

        return definition

    def __new__(mcs, new_cls_name: str, bases: tuple[type, ...], attrs: dict[str, Any]) -> "PowerMeta":
        cls = super().__new__(mcs, new_cls_name, bases, attrs)

        if mcs._is_implementation(cls):
            mcs._setattr(cls, "__registry", PowerRegistry(cls.__qualname__))
            mcs._setattr(cls, "__power_status", "pending")
            mcs._setattr(cls, "__context_slot", ContextSlot(f"ambit|{cls.__module__}.{cls.__qualname__}.current"))

        return cls

    def __call__(cls, *args: Any, **kwargs: Any) -> Any:
        if type(cls)._is_implementation(cls) and cls.powers_awaiting_processing:
            cls.process_powers()

        return super().__call__(*args, **kwargs)

    def __getattr__(cls, name: str) -> Any:
        # Only reached for attributes which do not exist (yet), e.g., derived methods before processing
        if not name.startswith("_") and type(cls)._is_implementation(cls) and cls.powers_awaiting_processing:
            cls.process_powers()
            return getattr(cls, name)

        raise AttributeError(f"type object '{cls.__name__}' has no attribute '{name}'")

    def _power(cls, *names_and_predicate: Any) -> None:
        """Declares one or more powers sharing a predicate, given as the last argument, e.g.
        ``cls._power("posts", "visible_posts", predicate)``.
        """
        *names, predicate = names_and_predicate or (None,)

        if not cls.power_helpers_enabled:
            logger.warning(
                "Ignoring declaration of power(s) %s for '%s' made outside of its _powers method", names, cls.__name__
            )
            return

        if not names:
            raise PowerDefinitionInvalid(
                f"declaration of powers for '{cls.__name__}' needs at least one name and a predicate"
            )

        for name in names:
            type(cls)._make_power(cls, name, predicate)

    def process_powers(cls) -> None:  # type: ignore[reportSelfClassParameterName]
        if not cls.powers_awaiting_processing:
            return

        # Power classes inherit derived methods from their bases, so these need to exist first
        for base in cls.__mro__[1:]:
            if type(cls)._is_power_class(base) and type(cls)._is_implementation(base):
                base.process_powers()

        type(cls)._setattr(cls, "__power_status", "processing")

        try:
            # Only declarations made by this class itself are processed, inherited ones belong to the base class
            if "_powers" in vars(cls):
                type(cls)._get_powers_method(cls)()
        except Exception:
            type(cls)._setattr(cls, "__power_status", "pending")
            raise

        type(cls)._setattr(cls, "__power_status", "done")
        logger.debug("Processed %d power(s) declared by '%s'", len(type(cls)._getattr(cls, "__registry")), cls.__name__)

    def get_singularizer(cls) -> Singularizer:
        return cls.singularizer or get_singularizer()

    def singularize_power_name(cls, name: str) -> str:
        singular = cls.get_singularizer().singularize(name)

        if singular == name:
            raise PowerNotSingularizable(name)

        return singular

    def power_ids_name(cls, name: str) -> str:
        return f"{singular_form(cls.get_singularizer(), name) or name}_ids"

    @contextmanager
    def with_power(cls, inner_power: Any) -> Generator[Optional[Any], None, None]:
        """Makes a power instance current for the ``with`` block. Any value which is neither ``None`` nor an
        instance of the power class is used to construct one. The previously current power is restored on exit.
        """
        if inner_power is not None and not isinstance(inner_power, cls):
            inner_power = cls(inner_power)

        with cls.context_slot.scoped(inner_power) as power:
            yield power

    def without_power(cls) -> Any:
        return cls.with_power(None)

    @property
    def current(cls) -> Optional[Any]:
        return cls.context_slot.get()

    @current.setter
    def current(cls, power: Optional[Any]) -> None:
        cls.context_slot.set(power)

    @property
    def context_slot(cls) -> ContextSlot:
        return type(cls)._getattr(cls, "__context_slot")  # type: ignore[no-any-return]

    @property
    def registry(cls) -> PowerRegistry:
        if cls.powers_awaiting_processing:
            cls.process_powers()

        return type(cls)._getattr(cls, "__registry")  # type: ignore[no-any-return]

    @property
    def powers(cls) -> Mapping[str, PowerDefinition]:
        if cls.powers_awaiting_processing:
            cls.process_powers()

        powers: Dict[str, PowerDefinition] = {}

        for klass in reversed(cls.__mro__):
            if type(cls)._is_power_class(klass) and type(cls)._is_implementation(klass):
                powers.update((definition.name, definition) for definition in klass.registry)

        return MappingProxyType(powers)

    @property
    def powers_awaiting_processing(cls) -> bool:
        return bool(type(cls)._getattr(cls, "__power_status") == "pending")

    @property
    def power_helpers_enabled(cls) -> bool:
        return bool(type(cls)._getattr(cls, "__power_status") == "processing")

    @property
    def powers_processed(cls) -> bool:
        return bool(type(cls)._getattr(cls, "__power_status") == "done")
