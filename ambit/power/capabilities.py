"""Contracts a predicate's return value may fulfil.

A power's raw predicate may return a boolean, ``None``, a materialized collection, or one of the value types
declared below. The derivation engine never inspects anything beyond these contracts:

- ``Queryable``: a deferred result (e.g., a database query) which has not been loaded. It can tell whether it is
  empty, whether it trivially selects every record of its source, and can project itself onto identity keys without
  loading whole records.
- ``LazyReference``: a not-yet-loaded reference to a single object, such as a lazily loaded association. It counts as
  present without being loaded.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Hashable, Optional, Set


class Queryable(ABC):
    @abstractmethod
    def is_empty(self) -> bool:
        """Returns whether evaluating the query would yield no records."""

    @abstractmethod
    def selects_all_records(self) -> bool:
        """Returns whether the query is known to select every record of its source, without evaluating it."""

    @abstractmethod
    def collect_identifiers(self) -> Set[Hashable]:
        """Returns the identity keys of the records selected by the query."""


class LazyReference(ABC):
    @abstractmethod
    def load(self) -> Any:
        """Resolves the reference, returning the referenced object or ``None``."""


class DeferredReference(LazyReference):
    """A lazy reference backed by a loader callable which is invoked at most once."""

    _UNLOADED = object()

    def __init__(self, loader: Callable[[], Any]) -> None:
        self._loader = loader
        self._target: Any = DeferredReference._UNLOADED

    def __repr__(self) -> str:
        state = "unloaded" if not self.loaded else repr(self._target)
        return f"{self.__class__.__name__}({state})"

    def load(self) -> Any:
        if not self.loaded:
            self._target = self._loader()

        return self._target

    @property
    def loaded(self) -> bool:
        return self._target is not DeferredReference._UNLOADED

    @property
    def target(self) -> Optional[Any]:
        return self._target if self.loaded else None
