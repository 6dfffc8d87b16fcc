"""Singular forms of power names.

A power such as ``visible_posts`` gets a singular membership query (``has_visible_post``) and an identifier method
(``visible_post_ids``). Which singular form a name has is decided by a ``Singularizer``. The default one is selected
with the ``singularizer`` option of the ``power`` configuration component:

- ``inflect``: English inflection rules from the ``inflect`` library (default)
- ``none``: no name has a singular form
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional

import inflect

from ambit import ambit_logging, config
from ambit.power.errors import PowerNotSingularizable

logger = ambit_logging.init_logging("power")


class Singularizer(ABC):
    @abstractmethod
    def singularize(self, name: str) -> str:
        """Returns the singular form of ``name``.

        Raises:
            PowerNotSingularizable: if ``name`` has no singular form which differs from ``name`` itself
        """

    def get_name(self) -> str:
        return self.__class__.__name__


class InflectSingularizer(Singularizer):
    """Singularizes the last word of an underscore-separated name, so that ``visible_posts`` becomes
    ``visible_post``.
    """

    def __init__(self) -> None:
        self._engine = inflect.engine()

    def singularize(self, name: str) -> str:
        stem, sep, word = name.rpartition("_")

        if not word:
            raise PowerNotSingularizable(name)

        singular_word = self._engine.singular_noun(word)

        if not singular_word or singular_word == word:
            raise PowerNotSingularizable(name)

        return f"{stem}{sep}{singular_word}"

    def get_name(self) -> str:
        return "inflect"


class NullSingularizer(Singularizer):
    def singularize(self, name: str) -> str:
        raise PowerNotSingularizable(name)

    def get_name(self) -> str:
        return "none"


SINGULARIZERS = {
    "inflect": InflectSingularizer,
    "none": NullSingularizer,
}

_singularizers: Dict[str, Singularizer] = {}


def get_singularizer() -> Singularizer:
    """Returns the singularizer selected in the ``power`` configuration, created on first use."""
    name = config.get("power", "singularizer", fallback="inflect").lower()

    if name not in SINGULARIZERS:
        logger.error("Unknown singularizer '%s', falling back to 'inflect'", name)
        name = "inflect"

    if name not in _singularizers:
        _singularizers[name] = SINGULARIZERS[name]()
        logger.debug("Using singularizer '%s' for power names", name)

    return _singularizers[name]


def singular_form(singularizer: Singularizer, name: str) -> Optional[str]:
    """Returns the singular form of ``name``, or ``None`` if the name has no distinct singular form."""
    try:
        return singularizer.singularize(name)
    except PowerNotSingularizable:
        return None
