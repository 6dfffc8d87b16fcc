from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterator, Optional


@dataclass(frozen=True)
class PowerDefinition:
    """A declared power and the names of the methods derived from it.

    Attributes:
        name: The power name, without the "?" suffix of boolean-only powers
        predicate: The function supplied on declaration, called as ``predicate(power, *context)``
        boolean_only: Whether the power was declared with a "?" suffix
        singular: The singular form of the name, if one exists and membership methods were derived
        ids_name: The name of the identifier extraction method, ``None`` for boolean-only powers
        derived: The names of all methods derived from the declaration
    """

    name: str
    predicate: Callable[..., Any]
    boolean_only: bool = False
    singular: Optional[str] = None
    ids_name: Optional[str] = None
    derived: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def query_name(self) -> str:
        return f"has_{self.name}"

    @property
    def assertion_name(self) -> str:
        return f"require_{self.name}"

    @property
    def singular_query_name(self) -> Optional[str]:
        return f"has_{self.singular}" if self.singular else None

    @property
    def singular_assertion_name(self) -> Optional[str]:
        return f"require_{self.singular}" if self.singular else None


class PowerRegistry:
    """Table of the powers declared by a single declaring type."""

    def __init__(self, owner: str) -> None:
        self._owner = owner
        self._definitions: Dict[str, PowerDefinition] = {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._owner}: {sorted(self._definitions)})"

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __iter__(self) -> Iterator[PowerDefinition]:
        return iter(self._definitions.values())

    def __len__(self) -> int:
        return len(self._definitions)

    def declare(self, definition: PowerDefinition) -> Optional[PowerDefinition]:
        """Records a definition, replacing any definition with the same name. The replaced definition is returned."""
        previous = self._definitions.get(definition.name)
        self._definitions[definition.name] = definition
        return previous

    def get(self, name: str) -> Optional[PowerDefinition]:
        return self._definitions.get(name)

    def names(self) -> list[str]:
        return list(self._definitions)

    def find_by_method(self, method_name: str) -> Optional[PowerDefinition]:
        for definition in self._definitions.values():
            if method_name in definition.derived:
                return definition

        return None

    @property
    def owner(self) -> str:
        return self._owner
