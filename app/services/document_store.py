# app/services/document_store.py
"""
Document-style access to the users and tasks tables.

Every public method runs in its own session and commits before returning, so
each single-document write is atomic on its own and nothing spans two
documents. Callers that need several writes issue them one after another.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.exceptions import DuplicateKeyError, StoreError
from app.models import User
from app.utils.query_builder import CollectionFields, ListQuery, apply_list_query, compile_filter

logger = logging.getLogger(__name__)


class DocumentStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def session(self) -> Iterator[Session]:
        db: Session = self._session_factory()
        try:
            yield db
            db.commit()
        except IntegrityError as e:
            db.rollback()
            logger.error(f"Integrity error: {e.orig}")
            raise DuplicateKeyError("Duplicate key", str(e.orig)) from e
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Store error: {e}")
            raise StoreError("Store operation failed", str(e)) from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # Reads

    def get(self, model, doc_id: str):
        with self.session() as db:
            return db.query(model).filter(model.id == doc_id).first()

    def get_field(self, model, doc_id: str, column) -> Optional[Any]:
        """Projection-only lookup of a single field; None when the document is missing"""
        with self.session() as db:
            row = db.query(column).filter(model.id == doc_id).first()
            return row[0] if row else None

    def find_one(self, model, **criteria):
        with self.session() as db:
            return db.query(model).filter_by(**criteria).first()

    def find_by_ids(self, model, ids: List[str]) -> List[Any]:
        if not ids:
            return []
        with self.session() as db:
            return db.query(model).filter(model.id.in_(ids)).all()

    def find(self, fields: CollectionFields, list_query: ListQuery) -> List[Any]:
        with self.session() as db:
            return apply_list_query(db.query(fields.model), fields, list_query).all()

    def count(self, fields: CollectionFields, where: Dict[str, Any]) -> int:
        with self.session() as db:
            return db.query(fields.model).filter(*compile_filter(fields, where)).count()

    def all(self, model) -> List[Any]:
        with self.session() as db:
            return db.query(model).all()

    # Single-document writes

    def insert(self, document):
        with self.session() as db:
            db.add(document)
            db.flush()
            return document

    def update_one(self, model, doc_id: str, values: Dict[str, Any]):
        """Set fields on one document; returns the updated document or None"""
        with self.session() as db:
            document = db.query(model).filter(model.id == doc_id).with_for_update().first()
            if document is None:
                return None
            for key, value in values.items():
                setattr(document, key, value)
            return document

    def delete(self, model, doc_id: str):
        """Delete one document; returns the deleted document or None"""
        with self.session() as db:
            document = db.query(model).filter(model.id == doc_id).first()
            if document is None:
                return None
            db.delete(document)
            return document

    def add_pending_task(self, user_id: str, task_id: str) -> bool:
        """Append task_id to the user's pending list unless already present"""
        if not user_id or not task_id:
            return False
        with self.session() as db:
            user = db.query(User).filter(User.id == user_id).with_for_update().first()
            if user is None or task_id in user.pending_tasks:
                return False
            user.pending_tasks = [*user.pending_tasks, task_id]
            return True

    def pull_pending_task(self, user_id: str, task_id: str) -> bool:
        """Remove every occurrence of task_id from the user's pending list"""
        if not user_id or not task_id:
            return False
        with self.session() as db:
            user = db.query(User).filter(User.id == user_id).with_for_update().first()
            if user is None or task_id not in user.pending_tasks:
                return False
            user.pending_tasks = [pending for pending in user.pending_tasks if pending != task_id]
            return True

    # Multi-document writes (one statement, no cross-document guarantees)

    def update_many(self, model, clauses: list, values: Dict[str, Any]) -> int:
        with self.session() as db:
            return db.query(model).filter(*clauses).update(values, synchronize_session=False)
