"""Request body and query helpers shared by the resource routers"""
import json
import re
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from fastapi import Request, status
from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from vpdb.utils.errors import ApiError, ApiValidationError, field_error

ModelT = TypeVar("ModelT")
SchemaT = TypeVar("SchemaT", bound=BaseModel)

_SORT_PATTERN = re.compile(r"^(-?)([a-z0-9_-]+)$")


def get_or_404(db: Session, model: Type[ModelT], entity_id: str, name: Optional[str] = None) -> ModelT:
    entity = db.query(model).filter(model.id == entity_id).first()
    if entity is None:
        raise ApiError(status.HTTP_404_NOT_FOUND, f'No {name or model.__name__.lower()} with ID "{entity_id}" found.')
    return entity


def assert_fields(body: Mapping[str, Any], updatable_fields: List[str]) -> None:
    """Reject a body containing fields that can't be updated"""
    invalid = [name for name in body if name not in updatable_fields]
    if invalid:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            f'Invalid field{"" if len(invalid) == 1 else "s"}: ["{", ".join(invalid)}"]. '
            f'Allowed fields: ["{", ".join(updatable_fields)}"]',
        )


def check_read_only_fields(new: Mapping[str, Any], old: Mapping[str, Any], allowed_fields: List[str]) -> List[Dict[str, Any]]:
    """Return a validation error for every submitted read-only field that differs from the stored value"""
    errors = []
    for name in new:
        if name in allowed_fields:
            continue
        if _is_modified(new.get(name), old.get(name)):
            errors.append(field_error(name, "This field is read-only and cannot be changed.", new.get(name)))
    return errors


def _is_modified(new_value: Any, old_value: Any) -> bool:
    if not new_value:
        return False
    if isinstance(old_value, datetime):
        return str(new_value) != old_value.isoformat()
    if isinstance(old_value, (dict, list)):
        return json.dumps(new_value, sort_keys=True, default=str) != json.dumps(old_value, sort_keys=True, default=str)
    return new_value != old_value


def validate(schema: Type[SchemaT], data: Mapping[str, Any]) -> SchemaT:
    """Validate a raw body against a schema, raising field-level errors"""
    try:
        return schema.model_validate(dict(data))
    except ValidationError as exc:
        raise ApiValidationError(validation_errors(exc))


def validation_errors(exc: Any) -> List[Dict[str, Any]]:
    """Convert pydantic errors into ``{path, message, value}`` entries"""
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        errors.append(field_error(".".join(loc), error.get("msg", "Invalid value."), error.get("input")))
    return errors


def sort_order(request: Request, default: str, columns: Mapping[str, Any]) -> Any:
    """Translate ``?sort=<field>`` or ``?sort=-<field>`` into an ORDER BY clause"""
    match = _SORT_PATTERN.match(request.query_params.get("sort") or "")
    if not match or match.group(2) not in columns:
        match = _SORT_PATTERN.match(default)
    column = columns[match.group(2)]
    return column.desc() if match.group(1) else column.asc()


def query_list(request: Request, name: str) -> List[str]:
    """Split a comma separated query parameter"""
    value = request.query_params.get(name)
    return [part.strip() for part in value.split(",") if part.strip()] if value else []
