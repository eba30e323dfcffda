"""Typed view over a document's ``coordinateFields`` payload.

Documents persist their field data as a JSON tree shaped
``{"coordinateFields": [{"id", "type", "label", "required", "value", ...}]}``.
Everything in the workflow engine works on the parsed variants below instead
of poking at raw dictionaries. Legacy signature fields (``reviewer_signature``
bound through ``reviewerEmail``) are folded into :class:`SignatureField` by
:func:`parse_field`, which is the only place that knows about the alias.
"""

from __future__ import annotations

from typing import Any, Iterable, Union

from pydantic import BaseModel, ConfigDict, Field

FIELDS_KEY = "coordinateFields"
SIGNATURE_FIELD_TYPE = "signer_signature"
LEGACY_SIGNATURE_FIELD_TYPE = "reviewer_signature"
_SIGNATURE_TYPES = {SIGNATURE_FIELD_TYPE, LEGACY_SIGNATURE_FIELD_TYPE}


def _is_filled(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


class BaseField(BaseModel):
    # Layout keys (page, x, y, width, ...) are carried through untouched.
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    type: str = "text"
    label: str | None = None
    required: bool = False
    value: Any = ""

    @property
    def is_filled(self) -> bool:
        return _is_filled(self.value)

    @property
    def display_name(self) -> str:
        return self.label or self.id


class TextField(BaseField):
    pass


class SignatureField(BaseField):
    type: str = SIGNATURE_FIELD_TYPE
    signer_email: str | None = Field(default=None, alias="signerEmail")
    signer_name: str | None = Field(default=None, alias="signerName")

    def is_bound_to(self, email: str | None) -> bool:
        if not email or not self.signer_email:
            return False
        return self.signer_email.strip().lower() == email.strip().lower()


DocumentField = Union[TextField, SignatureField]


def parse_field(raw: dict[str, Any]) -> DocumentField:
    data = dict(raw)
    if "id" not in data or data["id"] is None:
        data["id"] = "unknown"
    data["id"] = str(data["id"])
    if data.get("type") in _SIGNATURE_TYPES:
        data["type"] = SIGNATURE_FIELD_TYPE
        legacy_email = data.pop("reviewerEmail", None)
        legacy_name = data.pop("reviewerName", None)
        if "signerEmail" not in data:
            data["signerEmail"] = legacy_email
        if "signerName" not in data:
            data["signerName"] = legacy_name
        return SignatureField.model_validate(data)
    return TextField.model_validate(data)


def parse_fields(data: dict[str, Any] | None) -> list[DocumentField]:
    if not data:
        return []
    raw_fields = data.get(FIELDS_KEY)
    if not isinstance(raw_fields, list):
        return []
    return [parse_field(item) for item in raw_fields if isinstance(item, dict)]


def dump_fields(fields: Iterable[DocumentField]) -> list[dict[str, Any]]:
    return [field.model_dump(by_alias=True, exclude_none=True) for field in fields]


def with_fields(data: dict[str, Any] | None, fields: Iterable[DocumentField]) -> dict[str, Any]:
    """Copy of ``data`` whose field list is replaced by ``fields``."""
    updated = dict(data or {})
    updated[FIELDS_KEY] = dump_fields(fields)
    return updated


def initial_fields(schema: list | None) -> dict[str, Any]:
    """Field data for a new document: the template schema with every value cleared."""
    fields = []
    for item in schema or []:
        if not isinstance(item, dict):
            continue
        copy = dict(item)
        copy["value"] = ""
        fields.append(copy)
    return {FIELDS_KEY: fields}


def missing_required(fields: Iterable[DocumentField]) -> list[str]:
    return [field.display_name for field in fields if field.required and not field.is_filled]


def signature_fields(fields: Iterable[DocumentField]) -> list[SignatureField]:
    return [field for field in fields if isinstance(field, SignatureField)]


def sanitize_fields(data: dict[str, Any] | None) -> dict[str, Any] | None:
    """Strip signature payloads and signer identities, for listings shared across signers."""
    if data is None:
        return None
    fields = parse_fields(data)
    for field in signature_fields(fields):
        field.value = ""
        field.signer_email = None
        field.signer_name = None
    return with_fields(data, fields)
