from typing import Any, Sequence

from ambit.common.exception import AmbitException


class PowerError(AmbitException):
    _msg_fmt = "An unknown power error occurred."


class Powerless(PowerError):
    """Raised by an assertion (``require_*``) whose query evaluated to false."""

    def __init__(self, power_name: str, args: Sequence[Any] = ()) -> None:
        self.power_name = power_name
        self.power_args = tuple(args)
        super().__init__(f"No power to {[power_name, *self.power_args]!r}")


class NoCollection(PowerError):
    """Raised when a membership check or identifier extraction is attempted against a power whose value is not a
    collection or query.
    """

    def __init__(self, power_name: str, actual_type: type) -> None:
        self.power_name = power_name
        self.actual_type = actual_type
        super().__init__(
            f"can only check membership of an object in a collection, but power '{power_name}' was of type "
            f"'{actual_type.__name__}'"
        )


class PowerNotSingularizable(PowerError):
    def __init__(self, name: str) -> None:
        self.power_name = name
        super().__init__(f"Power name can not have a singular form: {name}")


class UnknownPower(PowerError):
    def __init__(self, name: str) -> None:
        self.power_name = name
        super().__init__(f"no power named '{name}' has been declared")


class PowerDefinitionInvalid(PowerError):
    pass
