from __future__ import annotations

import os
import uuid
from datetime import datetime
from typing import Callable

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine

from coworks.api.deps import get_db
from coworks.db import session as db_session_module
from coworks.main import app
from coworks.models.document import Document
from coworks.models.template import Template
from coworks.models.user import User, UserRole
from coworks.services.identity import ActorContext
from coworks.services.workflow import WorkflowService
from coworks.utils.security import create_access_token

pytestmark = pytest.mark.anyio


@pytest.fixture()
def db_engine(tmp_path):
    test_database_url = os.getenv("TEST_DATABASE_URL")
    if not test_database_url:
        db_path = tmp_path / f"test_{uuid.uuid4().hex}.db"
        test_database_url = f"sqlite:///{db_path}"

    engine = create_engine(test_database_url, connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(bind=engine)

    previous_engine = db_session_module.engine
    db_session_module.engine = engine

    def override_dependency():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_db] = override_dependency

    yield engine

    app.dependency_overrides.pop(get_db, None)
    db_session_module.engine = previous_engine
    SQLModel.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def client(db_engine) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def db_session(db_engine) -> Session:
    with Session(db_engine) as session:
        yield session


@pytest.fixture()
def make_user(db_session) -> Callable[..., User]:
    def _make_user(email: str, full_name: str | None = None, **extra) -> User:
        user = User(email=email.lower(), full_name=full_name or email.split("@")[0].title(), **extra)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def creator(make_user) -> User:
    return make_user("creator@example.com", "Carla Creator")


@pytest.fixture()
def editor(make_user) -> User:
    return make_user("editor@example.com", "Eddie Editor")


@pytest.fixture()
def reviewer(make_user) -> User:
    return make_user("reviewer@example.com", "Rita Reviewer")


@pytest.fixture()
def staff(make_user) -> User:
    return make_user("staff@example.com", "Sam Staff", profile=UserRole.STAFF.value)


@pytest.fixture()
def template_fields() -> list[dict]:
    return [
        {"id": "company", "type": "text", "label": "Company", "required": True, "value": "prefilled"},
        {"id": "notes", "type": "text", "label": "Notes", "required": False},
        {"id": "sig-1", "type": "signer_signature", "signerEmail": "signer1@example.com", "signerName": "Signer One"},
        {"id": "sig-2", "type": "reviewer_signature", "reviewerEmail": "signer2@example.com"},
    ]


@pytest.fixture()
def template(db_session, creator, template_fields) -> Template:
    item = Template(
        name="Service agreement",
        description="Standard agreement",
        created_by_id=creator.id,
        coordinate_fields=template_fields,
    )
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


@pytest.fixture()
def sent() -> list:
    return []


@pytest.fixture()
def workflow(db_session, sent) -> WorkflowService:
    return WorkflowService(db_session, dispatcher=sent.extend)


def actor_for(user: User) -> ActorContext:
    return ActorContext.for_user(user)


def fill_fields(document: Document, **values) -> dict:
    data = dict(document.data or {})
    fields = []
    for item in data.get("coordinateFields", []):
        item = dict(item)
        if item["id"] in values:
            item["value"] = values[item["id"]]
        fields.append(item)
    data["coordinateFields"] = fields
    return data


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}


def future(hours: int) -> datetime:
    from datetime import timedelta

    from coworks.models.base import utcnow

    return utcnow() + timedelta(hours=hours)
