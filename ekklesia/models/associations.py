# ekklesia/models/associations.py
from datetime import datetime

from ekklesia.extensions import db


permission_role = db.Table(
    "permission_role",
    db.Column(
        "permission_id", db.String(36), db.ForeignKey("permissions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    db.Column(
        "role_id", db.String(36), db.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True
    ),
    db.Column("created_at", db.DateTime, default=datetime.utcnow),
    db.Column("updated_at", db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow),
)

# Direct grants that bypass roles
permission_user = db.Table(
    "permission_user",
    db.Column(
        "permission_id", db.String(36), db.ForeignKey("permissions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    db.Column(
        "user_id", db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    ),
    db.Column("created_at", db.DateTime, default=datetime.utcnow),
    db.Column("updated_at", db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow),
)

role_user = db.Table(
    "role_user",
    db.Column(
        "role_id", db.String(36), db.ForeignKey("roles.id", ondelete="CASCADE", onupdate="CASCADE"),
        primary_key=True, index=True,
    ),
    db.Column(
        "user_id", db.String(36), db.ForeignKey("users.id", ondelete="CASCADE", onupdate="CASCADE"),
        primary_key=True, index=True,
    ),
    db.Column("created_at", db.DateTime, default=datetime.utcnow),
    db.Column("updated_at", db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow),
)
