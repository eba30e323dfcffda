from __future__ import annotations

from uuid import UUID

from sqlalchemy import func
from sqlmodel import Session, select

from coworks.models.document import Document, DocumentStatus, DocumentStatusLog


class StatusLogService:
    """Append-only history of a document's status changes and annotations."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _next_sequence(self, document_id: UUID) -> int:
        current = self.session.exec(
            select(func.max(DocumentStatusLog.sequence)).where(DocumentStatusLog.document_id == document_id)
        ).one()
        return (current or 0) + 1

    def append(
        self,
        document: Document,
        status: DocumentStatus,
        changed_by=None,
        comment: str | None = None,
        reject_log: bool | None = None,
    ) -> DocumentStatusLog:
        entry = DocumentStatusLog(
            document_id=document.id,
            sequence=self._next_sequence(document.id),
            status=status,
            changed_by_email=getattr(changed_by, "email", None),
            changed_by_name=getattr(changed_by, "name", None),
            comment=comment,
            reject_log=(status == DocumentStatus.REJECTED) if reject_log is None else reject_log,
        )
        self.session.add(entry)
        self.session.flush()
        return entry

    def list_for_document(self, document_id: UUID) -> list[DocumentStatusLog]:
        return list(
            self.session.exec(
                select(DocumentStatusLog)
                .where(DocumentStatusLog.document_id == document_id)
                .order_by(DocumentStatusLog.sequence)
            ).all()
        )

    def delete_for_document(self, document_id: UUID) -> int:
        entries = self.list_for_document(document_id)
        for entry in entries:
            self.session.delete(entry)
        return len(entries)
