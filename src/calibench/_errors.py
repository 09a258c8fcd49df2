"""Exception types and the beartype configuration shared by the public surface.

Argument violations detected by beartype are raised as InvalidArgumentError so
callers see one error type for a missing target, a non-callable factory or a
negative count.
"""

from beartype import BeartypeConf, beartype


class CalibenchError(Exception):
    """Base class for all calibench errors."""


class InvalidArgumentError(CalibenchError, ValueError):
    """A required callable is missing or a count/configuration value is out of range."""


class ClockStateError(CalibenchError, RuntimeError):
    """A TimeControl was asked to make a transition its current state does not allow."""


checked = beartype(conf=BeartypeConf(violation_param_type=InvalidArgumentError))


def require_non_negative(name: str, value: int) -> None:
    if value < 0:
        raise InvalidArgumentError(f"{name} must be non-negative: {value}")
