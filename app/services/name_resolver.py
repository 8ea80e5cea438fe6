# app/services/name_resolver.py
from app.models import UNASSIGNED, User
from app.services.document_store import DocumentStore


class NameResolver:
    """Looks up the display name denormalized onto tasks as assignedUserName"""

    def __init__(self, store: DocumentStore):
        self.store = store

    def resolve(self, user_id: str) -> str:
        if not user_id:
            return UNASSIGNED
        name = self.store.get_field(User, user_id, User.name)
        return name if name is not None else UNASSIGNED
