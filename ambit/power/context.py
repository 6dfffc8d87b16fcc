import contextvars
from contextlib import contextmanager
from typing import Any, Generator, Optional


class ContextSlot:
    """Holds the current value of some per-unit-of-work state, such as the power instance which authorizes the work
    being performed.

    The value lives in a ``contextvars.ContextVar``, so each thread and each asyncio task sees its own value: a new
    thread starts without a value, and a task starts with a copy of the value current when it was created. Changes
    made by one unit of work are never observed by another.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._var: contextvars.ContextVar[Optional[Any]] = contextvars.ContextVar(name, default=None)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._name!r})"

    def get(self) -> Optional[Any]:
        return self._var.get()

    def set(self, value: Optional[Any]) -> None:
        self._var.set(value)

    @contextmanager
    def scoped(self, value: Optional[Any]) -> Generator[Optional[Any], None, None]:
        """Makes ``value`` current for the duration of the ``with`` block. On leaving the block, by any means, the
        value which was current on entry is restored.
        """
        old_value = self._var.get()
        self._var.set(value)

        try:
            yield value
        finally:
            self._var.set(old_value)

    @property
    def name(self) -> str:
        return self._name
