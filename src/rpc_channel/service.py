"""Service grouping — many method contracts under one dotted namespace.

A :class:`ServiceDefinition` is shared by both ends of a link: the serving end
turns it into :class:`~rpc_channel.method.MethodDefinition` objects with
:meth:`ServiceDefinition.implement`, the calling end wraps a channel in a
:class:`ServiceClient` to get one awaitable attribute per method.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .method import MethodContract

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from .channel import Channel
    from .method import Handler, MethodDefinition
    from .ports.validation import IValidator


@dataclass(frozen=True)
class MethodSchema:
    """Input/output validators for one method of a service."""

    input_validator: IValidator
    output_validator: IValidator


class ServiceDefinition:
    """A named group of method schemas.

    Usage::

        users = ServiceDefinition(
            "user",
            {"get": MethodSchema(PydanticValidator(GetUser), PydanticValidator(User))},
        )
        for definition in users.implement({"get": get_user}, "server"):
            channel.publish_method(definition)
    """

    def __init__(self, service_id: str, methods: Mapping[str, MethodSchema]) -> None:
        if not service_id:
            raise ValueError("Service id must not be empty")
        self._id = service_id
        self._contracts: dict[str, MethodContract] = {
            name: MethodContract(
                id=f"{service_id}.{name}",
                input_validator=schema.input_validator,
                output_validator=schema.output_validator,
            )
            for name, schema in methods.items()
        }

    @property
    def id(self) -> str:
        return self._id

    @property
    def method_names(self) -> tuple[str, ...]:
        return tuple(self._contracts)

    def contracts(self) -> dict[str, MethodContract]:
        """Short name -> contract (ids are ``<service>.<name>``)."""
        return dict(self._contracts)

    def contract(self, name: str) -> MethodContract:
        try:
            return self._contracts[name]
        except KeyError:
            raise KeyError(f"Service '{self._id}' has no method '{name}'") from None

    def implement(
        self,
        implementation: Mapping[str, Handler],
        target_id: str,
    ) -> list[MethodDefinition]:
        """Bind a handler to every method; all of them must be provided."""
        missing = [name for name in self._contracts if name not in implementation]
        if missing:
            raise ValueError(
                f"Missing handler(s) for service '{self._id}': {', '.join(missing)}"
            )
        return [
            contract.implement(implementation[name], target_id)
            for name, contract in self._contracts.items()
        ]

    def __repr__(self) -> str:
        return f"ServiceDefinition(id={self._id!r}, methods={list(self._contracts)!r})"


class ServiceClient:
    """Typed-feeling proxy: ``await client.get({"id": "1"})``.

    Each attribute named after a service method calls
    :meth:`Channel.invoke` with that method's validators. ``target`` and
    ``timeout_ms`` can be overridden per call.
    """

    def __init__(
        self,
        channel: Channel,
        service: ServiceDefinition,
        target_id: str,
        *,
        timeout_ms: int | None = None,
    ) -> None:
        self._channel = channel
        self._service = service
        self._target_id = target_id
        self._timeout_ms = timeout_ms

    @property
    def service(self) -> ServiceDefinition:
        return self._service

    @property
    def target_id(self) -> str:
        return self._target_id

    def __getattr__(self, name: str) -> Callable[..., Awaitable[Any]]:
        if name.startswith("_") or name not in self._service.method_names:
            raise AttributeError(
                f"{type(self).__name__} for service '{self._service.id}' "
                f"has no method '{name}'"
            )
        contract = self._service.contract(name)

        async def invoker(
            payload: Any = None,
            *,
            timeout_ms: int | None = None,
            target: str | None = None,
        ) -> Any:
            return await self._channel.invoke(
                self._target_id if target is None else target,
                contract.id,
                payload,
                input_validator=contract.input_validator,
                output_validator=contract.output_validator,
                timeout_ms=self._timeout_ms if timeout_ms is None else timeout_ms,
            )

        invoker.__name__ = name
        return invoker

    def __dir__(self) -> list[str]:
        return sorted(set(super().__dir__()) | set(self._service.method_names))


__all__ = ["MethodSchema", "ServiceClient", "ServiceDefinition"]
