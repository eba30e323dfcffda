# noqa: F401 to ensure models are imported for metadata
from coworks.models.document import Document, DocumentRole, DocumentStatusLog
from coworks.models.notification import UserNotification
from coworks.models.signing import SigningToken
from coworks.models.template import Folder, Template
from coworks.models.user import User

__all__ = [
    "Document",
    "DocumentRole",
    "DocumentStatusLog",
    "UserNotification",
    "SigningToken",
    "Folder",
    "Template",
    "User",
]
