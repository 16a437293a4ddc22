"""Design-by-contract assertions: checks, preconditions, postconditions and invariants."""

from __future__ import annotations

from typing import TypeVar

T = TypeVar("T")


class ContractError(AssertionError):
    """A failed contract assertion."""

    kind = "Assertion"

    def __init__(self, message: str = ""):
        self.message = message
        super().__init__(f"{self.kind} fail: {message}" if message else f"{self.kind} fail")


class CheckError(ContractError):
    """A failed general algorithm assertion."""

    kind = "Assertion"


class PreconditionError(ContractError):
    """A failed precondition."""

    kind = "Precondition"


class PostconditionError(ContractError):
    """A failed postcondition."""

    kind = "Postcondition"


class InvariantError(ContractError):
    """A failed invariant."""

    kind = "Invariant"


def check(condition: object, message: str = "") -> None:
    """Raise CheckError unless condition holds."""
    if not condition:
        raise CheckError(message)


def require(condition: object, message: str = "") -> None:
    """Raise PreconditionError unless condition holds."""
    if not condition:
        raise PreconditionError(message)


def ensure(condition: object, message: str = "") -> None:
    """Raise PostconditionError unless condition holds."""
    if not condition:
        raise PostconditionError(message)


def invariant(condition: object, message: str = "") -> None:
    """Raise InvariantError unless condition holds."""
    if not condition:
        raise InvariantError(message)


class _NullError(ContractError):
    kind = "Null pointer"

    def __init__(self, name: str):
        self.message = name
        AssertionError.__init__(self, f'Null pointer error, pointer: "{name}"')


def not_null(value: T | None, name: str = "value") -> T:
    """Return value, raising ContractError if it is None."""
    if value is None:
        raise _NullError(name)
    return value