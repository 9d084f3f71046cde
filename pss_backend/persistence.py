import logging

from sqlalchemy.exc import SQLAlchemyError

from pss_map.errors import StoreError
from pss_map.stores import ResourceStore
from .extensions import db
from .models import StoreEntry

logger = logging.getLogger(__name__)


class SqlResourceStore(ResourceStore):
    """
    Resource store backed by the store_entry table.
    Needs an application context; every set is committed on its own.
    """

    def get_string(self, key):
        try:
            entry = db.session.get(StoreEntry, key)
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StoreError(f"cannot read '{key}': {e}") from e
        return entry.value if entry else None

    def set_string(self, key, value):
        try:
            entry = db.session.get(StoreEntry, key)
            if entry is None:
                db.session.add(StoreEntry(key=key, value=value))
            else:
                entry.value = value
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error("Store write for '%s' failed: %s", key, e)
            raise StoreError(f"cannot write '{key}': {e}") from e
