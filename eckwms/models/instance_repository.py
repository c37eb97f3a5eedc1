"""Repository for managing registered instances in the database."""

import logging

from eckwms.models.base_repository import BaseRepository
from eckwms.models.instance import Instance

logger = logging.getLogger(__name__)


class SqlAlchemyInstanceRepository(BaseRepository):
    """Repository for instances using SQLAlchemy."""

    model_class = Instance

    def get_by_api_key(self, api_key):
        """Resolve an API key to its instance, or None."""
        if not api_key:
            return None
        return Instance.query.filter_by(api_key=api_key).first()

    def get_by_name(self, name):
        return Instance.query.filter_by(name=name).first()

    def get_all(self, tier=None):
        query = Instance.query
        if tier:
            query = query.filter_by(tier=tier)
        return query.order_by(Instance.created_at).all()
