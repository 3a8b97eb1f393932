from typing import Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from checkin.exceptions import ValidationException

M = TypeVar("M", bound=BaseModel)


def blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def require_text(value: Optional[str], label: str) -> str:
    value = blank_to_none(value)
    if value is None:
        raise ValueError(f"{label} is required.")
    return value


def first_error_message(error: ValidationError) -> str:
    first = error.errors(include_url=False, include_context=False)[0]
    return first["msg"].removeprefix("Value error, ")


def parse_model(model_cls: Type[M], data) -> M:
    """Build a request model, reporting the first problem as a ValidationException."""
    if isinstance(data, model_cls):
        return data

    try:
        return model_cls.model_validate(data or {})
    except ValidationError as e:
        raise ValidationException(first_error_message(e)) from e
