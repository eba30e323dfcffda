from __future__ import annotations

from typing import Any, Iterable

from coworks.schemas.fields import DocumentField, SignatureField, signature_fields


def signed_emails(fields: Iterable[DocumentField]) -> set[str]:
    """Signers with at least one filled signature field bound to them."""
    return {
        field.signer_email.strip().lower()
        for field in signature_fields(fields)
        if field.signer_email and field.is_filled
    }


def all_signers_signed(signer_emails: Iterable[str], fields: Iterable[DocumentField]) -> bool:
    """True when every signer holds a filled signature field. Never true for zero signers."""
    expected = {email.strip().lower() for email in signer_emails if email}
    if not expected:
        return False
    return expected <= signed_emails(fields)


def bound_fields(fields: Iterable[DocumentField], email: str) -> list[SignatureField]:
    return [field for field in signature_fields(fields) if field.is_bound_to(email)]


def apply_signature(fields: list[DocumentField], email: str, signature_data: Any) -> int:
    """Write ``signature_data`` into every field bound to ``email``; returns how many were written."""
    if signature_data is None or (isinstance(signature_data, str) and not signature_data.strip()):
        return 0
    targets = bound_fields(fields, email)
    for field in targets:
        field.value = signature_data
    return len(targets)
