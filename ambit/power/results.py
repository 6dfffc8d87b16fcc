from collections.abc import Collection
from enum import Enum
from typing import Any, Tuple

from ambit.power.capabilities import LazyReference
from ambit.power.sql import as_queryable


class ResultKind(Enum):
    """The kinds of value a power's predicate may return."""

    NIL = "nil"
    QUERYABLE = "queryable"
    LAZY_REFERENCE = "lazy_reference"
    COLLECTION = "collection"
    SCALAR = "scalar"


def classify(value: Any) -> Tuple[ResultKind, Any]:
    """Determines the kind of a predicate's return value.

    Returns a tuple of the ``ResultKind`` and the value normalized for that kind (a SQLAlchemy ``Query`` is wrapped in
    a ``QueryScope``, all other values are returned unchanged).

    Queries are recognised before anything else so that they are never compared or coerced to ``bool``, which would
    cause some query types to be evaluated.
    """
    if value is None:
        return ResultKind.NIL, value

    queryable = as_queryable(value)

    if queryable is not None:
        return ResultKind.QUERYABLE, queryable

    if isinstance(value, LazyReference):
        return ResultKind.LAZY_REFERENCE, value

    if isinstance(value, Collection) and not isinstance(value, (str, bytes, bytearray)):
        return ResultKind.COLLECTION, value

    return ResultKind.SCALAR, value
