"""apply_validator — run any IValidator and normalise its failure."""

from __future__ import annotations

from inspect import isawaitable
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from ..primitives.exceptions import ValidationError
from .pydantic import collect_errors

if TYPE_CHECKING:
    from ..ports.validation import IValidator


async def apply_validator(
    validator: IValidator,
    value: Any,
    *,
    trace_id: str | None,
    stage: str,
) -> Any:
    """Validate *value* and return the validated result.

    Sync and async validators are both accepted. A failure always surfaces as
    :class:`~rpc_channel.primitives.exceptions.ValidationError` tagged with
    *trace_id*, its message prefixed with *stage* (``"Input"``/``"Output"``).
    """
    try:
        result = validator.validate(value)
        if isawaitable(result):
            result = await result
    except ValidationError as exc:
        raise ValidationError(
            f"{stage} validation failed: {exc.message}",
            trace_id,
            errors=exc.errors,
        ) from exc
    except PydanticValidationError as exc:
        raise ValidationError(
            f"{stage} validation failed: {exc}",
            trace_id,
            errors=collect_errors(exc),
        ) from exc
    except Exception as exc:  # noqa: BLE001
        raise ValidationError(f"{stage} validation failed: {exc}", trace_id) from exc
    return result
