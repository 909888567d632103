"""Helpers turning pydantic validation failures into localization errors."""

from typing import Any, Mapping, Type, TypeVar

from pydantic import BaseModel, ValidationError

from modules.localization.domain.errors import InvalidInputError

ModelT = TypeVar("ModelT", bound=BaseModel)


def field_path(loc: tuple) -> str:
    return ".".join(str(part) for part in loc)


def validate_model(model: Type[ModelT], data: Mapping[str, Any]) -> ModelT:
    """Validate ``data`` into ``model``; failures raise InvalidInputError.

    The first error's location becomes the error's field path.
    """
    try:
        return model.model_validate(dict(data))
    except ValidationError as exc:
        errors = exc.errors()
        first = errors[0] if errors else {}
        path = field_path(first.get("loc", ())) or None
        message = first.get("msg", str(exc))
        raise InvalidInputError(
            f"{path}: {message}" if path else message,
            field=path,
            details={"errors": [
                {"field": field_path(e.get("loc", ())), "message": e.get("msg")} for e in errors
            ]},
        ) from exc
