"""
Sparse patch parsing and merge for partial patient updates.

Everything here is pure: no I/O and no repository access. The service
layer fetches the current record, calls merge_patch(), and decides what
to persist.

Two body shapes are accepted and produce the same sparse field set:

    # JSON Patch (RFC 6902 subset: add, replace, remove)
    [{"op": "replace", "path": "/firstName", "value": "Ana Maria"}]

    # Merge object
    {"firstName": "Ana Maria"}

Paths and keys may use the camelCase wire name or the snake_case field
name, case-insensitively. "remove" sets a field to null, which is only
valid for optional fields.
"""
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from core.exceptions import MalformedPatchError
from models.patient import MUTABLE_FIELDS, Patient
from schemas.patient import PatchOperation, PatientCreate

FieldErrors = List[Dict[str, str]]

_IMMUTABLE_FIELDS = {"id", "createdat", "created_at"}

_FIELD_LOOKUP: Dict[str, str] = {}
for _name in MUTABLE_FIELDS:
    _FIELD_LOOKUP[_name.lower()] = _name
    _FIELD_LOOKUP[to_camel(_name).lower()] = _name


def resolve_field(name: str) -> Optional[str]:
    """Map a wire or snake_case name to the snake_case field, or None."""
    return _FIELD_LOOKUP.get(name.lower())


def _resolve_patch_field(name: str) -> str:
    if name.lower() in _IMMUTABLE_FIELDS:
        raise MalformedPatchError(detail=f"Field '{name}' cannot be modified")
    field = resolve_field(name)
    if field is None:
        raise MalformedPatchError(detail=f"Unknown field '{name}'")
    return field


def _pointer_to_field(path: str) -> str:
    """Resolve a single-segment JSON Pointer such as "/firstName"."""
    if not path.startswith("/") or "/" in path[1:] or len(path) < 2:
        raise MalformedPatchError(detail=f"Unsupported patch path '{path}'")
    segment = path[1:].replace("~1", "/").replace("~0", "~")
    return _resolve_patch_field(segment)


def parse_patch(body: Any) -> Dict[str, Any]:
    """
    Turn a PATCH body into a sparse field set keyed by snake_case name.

    Operations are applied in order, so a later operation on the same field
    wins.

    Raises:
        MalformedPatchError: If the body is neither a list of supported
            operations nor an object of known fields.
    """
    patch: Dict[str, Any] = {}

    if isinstance(body, list):
        for index, raw in enumerate(body):
            try:
                operation = PatchOperation.model_validate(raw)
            except ValidationError as e:
                raise MalformedPatchError(detail=f"Invalid patch operation at index {index}") from e

            field = _pointer_to_field(operation.path)
            if operation.op == "remove":
                patch[field] = None
            elif "value" not in operation.model_fields_set:
                raise MalformedPatchError(
                    detail=f"Operation '{operation.op}' at index {index} requires a value"
                )
            else:
                patch[field] = operation.value
        return patch

    if isinstance(body, dict):
        for key, value in body.items():
            patch[_resolve_patch_field(str(key))] = value
        return patch

    raise MalformedPatchError(
        detail="Patch body must be a list of operations or an object of fields"
    )


def _error_field(loc: tuple) -> str:
    if not loc:
        return "body"
    field = resolve_field(str(loc[0]))
    return to_camel(field) if field else str(loc[0])


def validate_patient_fields(data: Mapping[str, Any]) -> Tuple[Optional[Dict[str, Any]], FieldErrors]:
    """
    Validate a full set of patient fields.

    Returns:
        (fields, []) with normalized snake_case values when valid, or
        (None, errors) listing every violated field.
    """
    try:
        model = PatientCreate.model_validate(dict(data))
    except ValidationError as e:
        errors = [
            {"field": _error_field(err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        return None, errors
    return model.model_dump(), []


def merge_patch(current: Patient, patch: Mapping[str, Any]) -> Tuple[Optional[Dict[str, Any]], FieldErrors]:
    """
    Seed a working copy from `current`, overlay the patch and validate it.

    Fields absent from the patch keep their current values exactly.
    """
    working = current.mutable_fields()
    working.update(patch)
    return validate_patient_fields(working)
