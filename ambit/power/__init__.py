from ambit.power.base_power import BasePower
from ambit.power.capabilities import DeferredReference, LazyReference, Queryable
from ambit.power.context import ContextSlot
from ambit.power.errors import (
    NoCollection,
    PowerDefinitionInvalid,
    PowerError,
    Powerless,
    PowerNotSingularizable,
    UnknownPower,
)
from ambit.power.power_meta import PowerMeta
from ambit.power.registry import PowerDefinition, PowerRegistry
from ambit.power.results import ResultKind, classify
from ambit.power.singular import InflectSingularizer, NullSingularizer, Singularizer
from ambit.power.sql import QueryScope, identity_key

__all__ = [
    "BasePower",
    "ContextSlot",
    "DeferredReference",
    "InflectSingularizer",
    "LazyReference",
    "NoCollection",
    "NullSingularizer",
    "PowerDefinition",
    "PowerDefinitionInvalid",
    "PowerError",
    "PowerMeta",
    "PowerNotSingularizable",
    "PowerRegistry",
    "Powerless",
    "Queryable",
    "QueryScope",
    "ResultKind",
    "Singularizer",
    "UnknownPower",
    "classify",
    "identity_key",
]
