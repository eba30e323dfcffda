import pytest

from coworks.models.document import TaskRole
from coworks.services.errors import ConflictError, NotFoundError
from coworks.services.identity import (
    ActorContext,
    IdentityService,
    PendingIdentity,
    ResolvedIdentity,
    normalize_email,
    same_identity,
)
from coworks.services.roles import RoleAssignmentStore
from coworks.services.workflow import WorkflowService
from tests.conftest import actor_for


@pytest.fixture()
def document(workflow, template, creator):
    return workflow.create_document(actor_for(creator), template.id)


@pytest.fixture()
def editing_document(workflow, template, creator, editor):
    return workflow.create_document(actor_for(creator), template.id, editor_email=editor.email)


def test_normalize_email():
    assert normalize_email("  Ana@Example.COM ") == "ana@example.com"
    with pytest.raises(ValueError, match="Invalid e-mail"):
        normalize_email("ana")
    with pytest.raises(ValueError):
        normalize_email("   ")


def test_resolve_known_user(db_session, editor):
    identity = IdentityService(db_session).resolve("EDITOR@example.com")

    assert identity == ResolvedIdentity(user_id=editor.id, email="editor@example.com", name=editor.full_name)


def test_resolve_creates_user_with_default_name(db_session):
    identity = IdentityService(db_session, auto_create=True).resolve("new.person@example.com")

    assert identity.user_id is not None
    assert identity.name == "new.person"


def test_resolve_without_auto_create_returns_pending(db_session):
    identity = IdentityService(db_session, auto_create=False).resolve("ghost@example.com", "Ghost")

    assert identity == PendingIdentity(email="ghost@example.com", name="Ghost")
    assert identity.user_id is None
    assert IdentityService(db_session).find_user("ghost@example.com") is None


def test_same_identity():
    actor = ActorContext(user_id=None, email="a@example.com", name="A")
    assert same_identity(actor, PendingIdentity(email="A@example.com", name="A"))
    assert not same_identity(actor, PendingIdentity(email="b@example.com", name="B"))


def test_elevated_access(make_user, staff):
    folder_manager = make_user("folders@example.com", can_access_folders=True)
    regular = make_user("regular@example.com")

    assert ActorContext.for_user(staff).has_elevated_access()
    assert ActorContext.for_user(folder_manager).has_elevated_access()
    assert not ActorContext.for_user(regular).has_elevated_access()
    assert not ActorContext.for_user(staff, elevated_profiles=[]).has_elevated_access()


def test_pending_role_binds_when_user_registers(db_session, document):
    identities = IdentityService(db_session, auto_create=False)
    roles = RoleAssignmentStore(db_session)
    pending = identities.resolve("ghost@example.com", "Ghost")
    roles.assign(document.id, TaskRole.REVIEWER, pending)
    db_session.commit()

    ghost_actor = ActorContext(user_id=None, email="ghost@example.com", name="Ghost")
    assert roles.holds_role(document.id, ghost_actor, TaskRole.REVIEWER)
    row = roles.find_one(document.id, TaskRole.REVIEWER)
    assert roles.email_of(row) == "ghost@example.com"
    assert roles.name_of(row) == "Ghost"

    user = identities.create_user("Ghost@example.com", "Ghost User")
    db_session.commit()

    row = roles.find_one(document.id, TaskRole.REVIEWER)
    assert row.assigned_user_id == user.id
    assert row.pending_email is None
    assert roles.holds_role(document.id, actor_for(user), TaskRole.REVIEWER)
    assert roles.name_of(row) == "Ghost User"


def test_single_holder_roles_are_replaced(db_session, document, editor, reviewer):
    roles = RoleAssignmentStore(db_session)
    roles.assign(document.id, TaskRole.EDITOR, ResolvedIdentity.from_user(editor))
    roles.assign(document.id, TaskRole.EDITOR, ResolvedIdentity.from_user(reviewer))
    db_session.commit()

    editors = roles.find_by_role(document.id, TaskRole.EDITOR)
    assert [row.assigned_user_id for row in editors] == [reviewer.id]


def test_multi_holder_roles_reject_duplicates(db_session, document, reviewer):
    roles = RoleAssignmentStore(db_session)
    roles.assign(document.id, TaskRole.SIGNER, ResolvedIdentity.from_user(reviewer))

    with pytest.raises(ConflictError, match="already assigned as signer"):
        roles.assign(document.id, TaskRole.SIGNER, ResolvedIdentity.from_user(reviewer))


def test_same_person_may_hold_several_roles(db_session, document, reviewer):
    roles = RoleAssignmentStore(db_session)
    identity = ResolvedIdentity.from_user(reviewer)
    roles.assign(document.id, TaskRole.REVIEWER, identity)
    roles.assign(document.id, TaskRole.SIGNER, identity)

    rows = roles.find_for(document.id, actor_for(reviewer))
    assert {row.task_role for row in rows} == {TaskRole.REVIEWER, TaskRole.SIGNER}
    assert roles.signer_emails(document.id) == {"reviewer@example.com"}


def test_remove_unknown_assignment(db_session, document):
    with pytest.raises(NotFoundError, match="not an assigned signer"):
        RoleAssignmentStore(db_session).remove(document.id, TaskRole.SIGNER, "nobody@example.com")


def test_pending_signer_flow_through_workflow(db_session, sent, editing_document, editor):
    identities = IdentityService(db_session, auto_create=False)
    workflow = WorkflowService(db_session, dispatcher=sent.extend, identity_service=identities)
    workflow.assign_signer(editing_document.id, actor_for(editor), "outside@example.com", "Outside Signer")

    message = sent[-1]
    assert message.recipient_id is None
    assert message.recipient_email == "outside@example.com"
    assert IdentityService(db_session).find_user("outside@example.com") is None

