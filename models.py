from extensions import db
from datetime import datetime
from sqlalchemy import JSON
import uuid

# Custom JSON type that uses JSONB on PostgreSQL and JSON/Text on SQLite
class SafeJSON(db.TypeDecorator):
    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            from sqlalchemy.dialects.postgresql import JSONB
            return dialect.type_descriptor(JSONB())
        else:
            return dialect.type_descriptor(JSON())

class Draft(db.Model):
    """In-progress dashboard form snapshot, one row per owner and draft key"""
    __tablename__ = 'drafts'
    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = db.Column(db.String(64), nullable=False)
    key = db.Column(db.String(255), nullable=False)
    payload = db.Column(SafeJSON, default={})  # {title, excerpt/description, tags, content, coverImage/thumbnail}
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('owner_id', 'key', name='uq_draft_owner_key'),
    )

    def to_dict(self):
        return {
            'key': self.key,
            'payload': self.payload or {},
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }
