# ekklesia/core/database.py

from ..extensions import db
from datetime import datetime
from contextlib import contextmanager
from typing import Generator
from sqlalchemy.orm import Session


@contextmanager
def session_manager() -> Generator[Session, None, None]:
    """
    Run a unit of work in a single transaction.

    Commits when the block exits cleanly, rolls everything back when it raises.
    Multi-step mutations (role sync, onboarding) go through here so they are
    applied all-or-nothing.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


class BaseModel(db.Model):
    __abstract__ = True

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class SoftDeleteMixin:
    """Tombstone rows with ``deleted_at`` instead of deleting them.

    Nothing filters deleted rows implicitly: callers ask for ``alive()`` when
    they want live rows only.
    """

    deleted_at = db.Column(db.DateTime, nullable=True, index=True)

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    def soft_delete(self):
        self.deleted_at = datetime.utcnow()
        db.session.add(self)

    def restore(self):
        self.deleted_at = None
        db.session.add(self)

    @classmethod
    def alive(cls):
        return cls.query.filter(cls.deleted_at.is_(None))

    @classmethod
    def trashed(cls):
        return cls.query.filter(cls.deleted_at.isnot(None))

    @classmethod
    def get_alive(cls, id):
        instance = db.session.get(cls, id)
        if instance is None or instance.is_deleted:
            return None
        return instance
