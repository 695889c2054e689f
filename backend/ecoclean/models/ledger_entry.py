from datetime import datetime

from ecoclean.extensions import db


class LedgerEntry(db.Model):
    __tablename__ = "kv_store"

    key = db.Column(db.String(255), primary_key=True)
    value = db.Column(db.JSON, nullable=False)

    # Bumped on every write; compare-and-set writes check it.
    version = db.Column(db.Integer, nullable=False, default=1)

    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "key": self.key,
            "value": self.value,
            "version": int(self.version or 0),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
