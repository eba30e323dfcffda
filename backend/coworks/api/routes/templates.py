from typing import Annotated, List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from coworks.api.deps import get_actor, get_db
from coworks.api.errors import http_error
from coworks.schemas.template import TemplateCreate, TemplateRead, TemplateUpdate
from coworks.services.identity import ActorContext
from coworks.services.template import TemplateService

router = APIRouter(prefix="/templates", tags=["templates"])


@router.post("", response_model=TemplateRead, status_code=status.HTTP_201_CREATED)
def create_template(
    payload: TemplateCreate,
    actor: Annotated[ActorContext, Depends(get_actor)],
    session: Annotated[Session, Depends(get_db)],
) -> TemplateRead:
    try:
        template = TemplateService(session).create_template(actor, payload)
    except ValueError as exc:
        raise http_error(exc) from exc
    return TemplateRead.model_validate(template)


@router.get("", response_model=List[TemplateRead])
def list_templates(
    actor: Annotated[ActorContext, Depends(get_actor)],
    session: Annotated[Session, Depends(get_db)],
) -> List[TemplateRead]:
    return [TemplateRead.model_validate(item) for item in TemplateService(session).list_templates(actor)]


@router.get("/{template_id}", response_model=TemplateRead)
def get_template(
    template_id: UUID,
    actor: Annotated[ActorContext, Depends(get_actor)],
    session: Annotated[Session, Depends(get_db)],
) -> TemplateRead:
    try:
        template = TemplateService(session).get_template(template_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return TemplateRead.model_validate(template)


@router.patch("/{template_id}", response_model=TemplateRead)
def update_template(
    template_id: UUID,
    payload: TemplateUpdate,
    actor: Annotated[ActorContext, Depends(get_actor)],
    session: Annotated[Session, Depends(get_db)],
) -> TemplateRead:
    try:
        template = TemplateService(session).update_template(template_id, actor, payload)
    except ValueError as exc:
        raise http_error(exc) from exc
    return TemplateRead.model_validate(template)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_template(
    template_id: UUID,
    actor: Annotated[ActorContext, Depends(get_actor)],
    session: Annotated[Session, Depends(get_db)],
) -> None:
    try:
        TemplateService(session).delete_template(template_id, actor)
    except ValueError as exc:
        raise http_error(exc) from exc
