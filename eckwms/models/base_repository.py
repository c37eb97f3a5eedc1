"""Shared unit-of-work handling for the repositories."""

import logging
from contextlib import contextmanager

from eckwms.extensions import db

logger = logging.getLogger(__name__)


class BaseRepository:
    """Repository base: id lookup plus commit/rollback around writes.

    Write methods take ``commit``. With ``commit=False`` the write joins a
    transaction owned by the caller, which commits or rolls back once for
    the whole unit of work.
    """

    model_class = None

    def __init__(self, db_instance=None):
        self.db = db_instance or db

    @contextmanager
    def transaction(self, commit=True):
        """Commit the enclosed writes, or roll them back if anything raises."""
        try:
            yield self.db.session
            if commit:
                self.db.session.commit()
        except Exception as e:
            if commit:
                self.db.session.rollback()
                logger.error(f"{type(self).__name__}: transaction rolled back: {str(e)}")
            raise

    def get_by_id(self, id):
        if not self.model_class:
            raise NotImplementedError("Model class must be set in derived repository")
        return self.db.session.get(self.model_class, id)

    def save(self, entity, commit=True):
        with self.transaction(commit):
            if entity not in self.db.session:
                self.db.session.add(entity)
        return entity

    def delete(self, entity, commit=True):
        with self.transaction(commit):
            self.db.session.delete(entity)
        return True
