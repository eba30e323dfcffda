from uuid import uuid4

import pytest

from coworks.models.template import Folder
from coworks.schemas.template import TemplateCreate, TemplateUpdate
from coworks.services.errors import ConflictError, ForbiddenError, NotFoundError
from coworks.services.identity import ActorContext
from coworks.services.template import TemplateService
from tests.conftest import actor_for


def test_create_and_list_templates(db_session, creator, editor, staff):
    service = TemplateService(db_session)
    private = service.create_template(actor_for(creator), TemplateCreate(name="Private NDA"))
    public = service.create_template(actor_for(creator), TemplateCreate(name="Public form", is_public=True))

    assert {item.id for item in service.list_templates(actor_for(creator))} == {private.id, public.id}
    assert [item.id for item in service.list_templates(actor_for(editor))] == [public.id]
    assert {item.id for item in service.list_templates(actor_for(staff))} == {private.id, public.id}


def test_pending_actor_cannot_create_templates(db_session):
    actor = ActorContext(user_id=None, email="ghost@example.com", name="Ghost")

    with pytest.raises(ForbiddenError):
        TemplateService(db_session).create_template(actor, TemplateCreate(name="Nope"))


def test_unknown_folder_is_rejected(db_session, creator):
    with pytest.raises(NotFoundError, match="Folder not found"):
        TemplateService(db_session).create_template(actor_for(creator), TemplateCreate(name="X", default_folder_id=uuid4()))


def test_documents_inherit_template_defaults(db_session, workflow, creator):
    folder = Folder(name="Contracts")
    db_session.add(folder)
    db_session.commit()
    template = TemplateService(db_session).create_template(
        actor_for(creator),
        TemplateCreate(name="Lease", default_folder_id=folder.id, coordinate_fields=[{"id": "rent", "value": "1000"}]),
    )

    document = workflow.create_document(actor_for(creator), template.id, title="  ")

    assert document.title == "Lease"
    assert document.folder_id == folder.id
    assert document.data == {"coordinateFields": [{"id": "rent", "value": ""}]}


def test_only_owner_or_elevated_user_manages_template(db_session, template, editor, staff):
    service = TemplateService(db_session)

    with pytest.raises(ForbiddenError):
        service.update_template(template.id, actor_for(editor), TemplateUpdate(name="Hijacked"))

    updated = service.update_template(template.id, actor_for(staff), TemplateUpdate(description="Reviewed"))
    assert updated.description == "Reviewed"
    assert updated.name == "Service agreement"


def test_template_in_use_cannot_be_deleted(db_session, workflow, template, creator):
    workflow.create_document(actor_for(creator), template.id)

    with pytest.raises(ConflictError, match="used by existing documents"):
        TemplateService(db_session).delete_template(template.id, actor_for(creator))


def test_delete_unused_template(db_session, template, creator):
    service = TemplateService(db_session)
    service.delete_template(template.id, actor_for(creator))

    with pytest.raises(NotFoundError):
        service.get_template(template.id)
