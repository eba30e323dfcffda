from typing import Annotated
from uuid import UUID

from fastapi import BackgroundTasks, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session, select

from coworks.core.config import settings
from coworks.db.session import get_session
from coworks.models.user import User
from coworks.services.identity import ActorContext
from coworks.services.notification import NotificationService
from coworks.services.outbox import OutboundMessage, dispatch_messages
from coworks.services.workflow import WorkflowService
from coworks.utils.security import TokenType, decode_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.api_v1_str}/auth/login")


def get_db() -> Session:
    yield from get_session()


def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    session: Annotated[Session, Depends(get_db)],
) -> User:
    try:
        payload = decode_token(token)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    if payload.get("token_type") != TokenType.ACCESS.value:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    try:
        user_id = UUID(str(payload["sub"]))
    except (KeyError, ValueError, TypeError) as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token subject") from exc

    user = session.exec(select(User).where(User.id == user_id)).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def get_current_active_user(current_user: Annotated[User, Depends(get_current_user)]) -> User:
    if not current_user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User inactive")
    return current_user


def get_actor(current_user: Annotated[User, Depends(get_current_active_user)]) -> ActorContext:
    return ActorContext.for_user(current_user)


def get_notification_service() -> NotificationService:
    return NotificationService.from_settings(settings)


def get_workflow_service(
    background_tasks: BackgroundTasks,
    session: Annotated[Session, Depends(get_db)],
    notification_service: Annotated[NotificationService, Depends(get_notification_service)],
) -> WorkflowService:
    def schedule(messages: list[OutboundMessage]) -> None:
        background_tasks.add_task(dispatch_messages, messages, notification_service)

    return WorkflowService(session, notification_service=notification_service, dispatcher=schedule)
