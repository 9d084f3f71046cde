from pss_backend.extensions import db


class StoreEntry(db.Model):
    """One key of the resource store: a whole serialized collection."""
    __tablename__ = 'store_entry'

    key = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime, default=db.func.now(), onupdate=db.func.now())
