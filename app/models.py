from datetime import datetime
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


class StoreEntry(db.Model):
    """One namespaced record of the local key/value store.

    ``value`` holds the whole record as JSON text. ``version`` is bumped on
    every write and used for compare-and-swap updates.
    """
    __tablename__ = 'store_entry'

    key = db.Column(db.String(128), primary_key=True)
    value = db.Column(db.Text, nullable=False, default='null')
    version = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime,
                           default=datetime.utcnow,
                           onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<StoreEntry {self.key} v{self.version}>'
