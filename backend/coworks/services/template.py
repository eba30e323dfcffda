from __future__ import annotations

from uuid import UUID

from sqlalchemy import or_
from sqlmodel import Session, select

from coworks.core.logging_setup import logger
from coworks.models.base import utcnow
from coworks.models.document import Document
from coworks.models.template import Folder, Template
from coworks.schemas.template import TemplateCreate, TemplateUpdate
from coworks.services.errors import ConflictError, ForbiddenError, NotFoundError
from coworks.services.identity import ActorContext


class TemplateService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get_template(self, template_id: UUID) -> Template:
        template = self.session.get(Template, template_id)
        if not template:
            raise NotFoundError("Template not found")
        return template

    def list_templates(self, actor: ActorContext) -> list[Template]:
        statement = select(Template).order_by(Template.created_at.desc())
        if not actor.has_elevated_access():
            statement = statement.where(or_(Template.is_public.is_(True), Template.created_by_id == actor.user_id))
        return list(self.session.exec(statement).all())

    def create_template(self, actor: ActorContext, payload: TemplateCreate) -> Template:
        if actor.user_id is None:
            raise ForbiddenError("Only registered users can create templates")
        if payload.default_folder_id and not self.session.get(Folder, payload.default_folder_id):
            raise NotFoundError("Folder not found")
        template = Template(
            name=payload.name,
            description=payload.description,
            is_public=payload.is_public,
            created_by_id=actor.user_id,
            deadline=payload.deadline,
            default_folder_id=payload.default_folder_id,
            coordinate_fields=payload.coordinate_fields,
        )
        self.session.add(template)
        self.session.commit()
        self.session.refresh(template)
        logger.info("Template %s created by %s", template.id, actor.email)
        return template

    def update_template(self, template_id: UUID, actor: ActorContext, payload: TemplateUpdate) -> Template:
        template = self.get_template(template_id)
        self._ensure_can_manage(template, actor)
        data = payload.model_dump(exclude_unset=True)
        if data.get("default_folder_id") and not self.session.get(Folder, data["default_folder_id"]):
            raise NotFoundError("Folder not found")
        for key, value in data.items():
            setattr(template, key, value)
        template.updated_at = utcnow()
        self.session.add(template)
        self.session.commit()
        self.session.refresh(template)
        return template

    def delete_template(self, template_id: UUID, actor: ActorContext) -> None:
        template = self.get_template(template_id)
        self._ensure_can_manage(template, actor)
        in_use = self.session.exec(select(Document.id).where(Document.template_id == template_id)).first()
        if in_use:
            raise ConflictError("Template is used by existing documents")
        self.session.delete(template)
        self.session.commit()
        logger.info("Template %s deleted by %s", template_id, actor.email)

    def _ensure_can_manage(self, template: Template, actor: ActorContext) -> None:
        if actor.has_elevated_access():
            return
        if actor.user_id is None or template.created_by_id != actor.user_id:
            raise ForbiddenError("Only the template creator can change this template")
