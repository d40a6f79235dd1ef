"""Method records — what a channel can execute and what it reports about it."""

from __future__ import annotations

from dataclasses import dataclass, field
from inspect import isawaitable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

    from .ports.validation import IValidator

    Handler = Callable[[Any], Any]


def short_name(method_id: str) -> str:
    """``"user.get"`` -> ``"get"``; ids without a dot are returned whole."""
    return method_id.rsplit(".", 1)[-1]


async def call_handler(handler: Handler, value: Any) -> Any:
    """Invoke a sync or async handler and return its result."""
    result = handler(value)
    if isawaitable(result):
        result = await result
    return result


@dataclass(frozen=True)
class MethodContract:
    """The shareable half of a method: id plus its input/output validators.

    Both sides of a link can import the same contract; the serving side turns
    it into a :class:`MethodDefinition` with :meth:`implement`.
    """

    id: str
    input_validator: IValidator
    output_validator: IValidator

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Method id must not be empty")

    @property
    def short_name(self) -> str:
        return short_name(self.id)

    def implement(self, handler: Handler, target_id: str) -> MethodDefinition:
        return MethodDefinition.from_contract(self, target_id, handler)


@dataclass(frozen=True)
class MethodDefinition:
    """One invokable procedure, registered under ``(target_id, id)``.

    Build it directly (a bare method) or from a contract with
    :meth:`from_contract`.
    """

    id: str
    target_id: str
    input_validator: IValidator
    output_validator: IValidator
    handler: Handler = field(repr=False)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Method id must not be empty")
        if not self.target_id:
            raise ValueError("Method target_id must not be empty")

    @classmethod
    def from_contract(
        cls,
        contract: MethodContract,
        target_id: str,
        handler: Handler,
    ) -> MethodDefinition:
        return cls(
            id=contract.id,
            target_id=target_id,
            input_validator=contract.input_validator,
            output_validator=contract.output_validator,
            handler=handler,
        )

    @property
    def key(self) -> tuple[str, str]:
        return (self.target_id, self.id)

    @property
    def short_name(self) -> str:
        return short_name(self.id)


@dataclass(frozen=True)
class MethodInfo:
    """Introspection entry: full id and short name."""

    id: str
    name: str


@dataclass(frozen=True)
class ServiceInfo:
    """Introspection snapshot of one service identity's methods."""

    id: str
    methods: tuple[MethodInfo, ...] = ()
