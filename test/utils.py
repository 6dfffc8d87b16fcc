from dataclasses import dataclass
from typing import Dict, Hashable, Set

from ambit.power import PowerNotSingularizable, Queryable, Singularizer


@dataclass(frozen=True)
class Post:
    id: int
    title: str = ""


class StubSingularizer(Singularizer):
    """Singularizes only the names it was given, signalling that any other name has no singular form."""

    def __init__(self, forms: Dict[str, str]) -> None:
        self._forms = forms

    def singularize(self, name: str) -> str:
        if name not in self._forms:
            raise PowerNotSingularizable(name)

        return self._forms[name]


class StubQuery(Queryable):
    """An in-memory query which counts how often it is evaluated."""

    def __init__(self, records, selects_all: bool = False) -> None:
        self.records = list(records)
        self.selects_all = selects_all
        self.evaluations = 0

    def __bool__(self) -> bool:
        raise AssertionError("a query must not be coerced to bool")

    def __eq__(self, other: object) -> bool:
        raise AssertionError("a query must not be compared")

    __hash__ = None  # type: ignore[assignment]

    def is_empty(self) -> bool:
        self.evaluations += 1
        return not self.records

    def selects_all_records(self) -> bool:
        return self.selects_all

    def collect_identifiers(self) -> Set[Hashable]:
        self.evaluations += 1
        return {record.id for record in self.records}
