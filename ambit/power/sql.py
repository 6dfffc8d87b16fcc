from typing import Any, Hashable, Optional, Set

from sqlalchemy import Table, inspect
from sqlalchemy.orm import Query
from sqlalchemy.sql.expression import Select

from ambit.power.capabilities import Queryable


class QueryScope(Queryable):
    """Adapts a SQLAlchemy ORM ``Query`` to the ``Queryable`` contract.

    Powers may return a plain ``Query`` (it is wrapped automatically) or construct a ``QueryScope`` themselves, which
    makes it possible to override the "selects all records" detection. A query is only detected as selecting all
    records if it selects a mapped class straight from its table without any WHERE, HAVING, GROUP BY, LIMIT, OFFSET
    or FETCH clause and without query options. Anything else is answered by collecting identifiers.
    """

    def __init__(self, query: Query, selects_all: Optional[bool] = None) -> None:
        if not isinstance(query, Query):
            raise TypeError(f"{self.__class__.__name__} must be initialised with a 'Query', not '{type(query).__name__}'")

        self._query = query
        self._selects_all = selects_all

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._query.statement})"

    @property
    def query(self) -> Query:
        return self._query

    def is_empty(self) -> bool:
        exists = self._query.session.query(self._query.exists()).scalar()
        return not exists

    def selects_all_records(self) -> bool:
        # pylint: disable=protected-access
        if self._selects_all is not None:
            return self._selects_all

        entity = self._query.column_descriptions[0]["entity"]
        statement = self._query.statement

        if entity is None or not isinstance(statement, Select):
            return False

        insp = inspect(entity)

        # Aliases may stand for a filtered subquery and single table inheritance adds a discriminator criterion
        if insp.is_aliased_class or insp.mapper.single:
            return False

        if any(
            (
                statement._where_criteria,
                statement._having_criteria,
                statement._group_by_clauses,
                statement._with_options,
            )
        ):
            return False

        for clause in ("_limit_clause", "_offset_clause", "_fetch_clause"):
            if getattr(statement, clause, None) is not None:
                return False

        froms = statement.get_final_froms()

        return len(froms) == 1 and isinstance(froms[0], Table) and froms[0] is insp.mapper.local_table

    def collect_identifiers(self) -> Set[Hashable]:
        entity = self._query.column_descriptions[0]["entity"]

        if entity is None:
            raise TypeError("cannot collect identifiers from a query which does not select a mapped entity")

        # Resolved through the entity so that the columns of an alias are selected rather than those of its table
        mapper = inspect(entity).mapper
        primary_key = [getattr(entity, mapper.get_property_by_column(column).key) for column in mapper.primary_key]
        rows = self._query.with_entities(*primary_key)

        if len(primary_key) == 1:
            return {row[0] for row in rows}

        return {tuple(row) for row in rows}


def as_queryable(value: Any) -> Optional[Queryable]:
    """Returns ``value`` as a ``Queryable`` if it is one or can be adapted into one, otherwise ``None``."""
    if isinstance(value, Queryable):
        return value

    if isinstance(value, Query):
        return QueryScope(value)

    return None


def identity_key(obj: Any) -> Hashable:
    """Returns the key used to test an object's membership in a set of identifiers.

    For a persistent SQLAlchemy instance this is its identity (the scalar value when the primary key has a single
    column). For any other object, its ``id`` attribute is used, or the object itself if it has none (e.g., plain
    integers or strings).
    """
    state = inspect(obj, raiseerr=False)
    identity = getattr(state, "identity", None)

    if identity is not None:
        return identity[0] if len(identity) == 1 else identity

    return getattr(obj, "id", obj)
