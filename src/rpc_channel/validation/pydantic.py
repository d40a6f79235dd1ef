"""PydanticValidator — IValidator backed by a pydantic TypeAdapter."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..primitives.exceptions import ValidationError

T = TypeVar("T")


def collect_errors(exc: PydanticValidationError) -> dict[str, list[str]]:
    """Flatten pydantic errors into ``{dotted.field.path: [messages]}``."""
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        loc = ".".join(str(p) for p in error.get("loc", ())) or "__root__"
        msg = error.get("msg", "validation error")
        errors.setdefault(loc, []).append(msg)
    return errors


def summarize(errors: dict[str, list[str]]) -> str:
    return "; ".join(
        f"{field}: {message}" for field, messages in errors.items() for message in messages
    )


class PydanticValidator(Generic[T]):
    """Validates payloads against any type pydantic understands.

    Models come back as model instances, ``TypedDict`` and ``dict`` schemas
    come back as plain dicts::

        class EchoInput(TypedDict):
            message: str

        validator = PydanticValidator(EchoInput)
        validator.validate({"message": "hi"})  # -> {"message": "hi"}
    """

    def __init__(self, schema: type[T] | Any) -> None:
        self._schema = schema
        self._adapter: TypeAdapter[T] = TypeAdapter(schema)

    @property
    def schema(self) -> Any:
        return self._schema

    def validate(self, value: Any) -> T:
        try:
            return self._adapter.validate_python(value)
        except PydanticValidationError as exc:
            errors = collect_errors(exc)
            raise ValidationError(summarize(errors), errors=errors) from exc

    def __repr__(self) -> str:
        name = getattr(self._schema, "__name__", repr(self._schema))
        return f"PydanticValidator({name})"
