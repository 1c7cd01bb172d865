# ekklesia/models/tenant.py
from ekklesia.extensions import db
from ekklesia.core.database import BaseModel
from uuid import uuid4


class Tenant(BaseModel):
    """A parish or diocese; owns its users, custom roles, families and BCCs"""

    __tablename__ = "tenants"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid4()))
    name = db.Column(db.String(150), nullable=False)
    slug = db.Column(db.String(100), unique=True, nullable=False)
    email = db.Column(db.String(255))
    phone = db.Column(db.String(50))
    address = db.Column(db.String(255))
    city = db.Column(db.String(100))
    country = db.Column(db.String(100))
    settings = db.Column(db.JSON)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    users = db.relationship("User", foreign_keys="User.tenant_id", back_populates="tenant")

    def __repr__(self):
        return f"<Tenant {self.slug}>"

    def activate(self):
        self.is_active = True
        db.session.add(self)

    def deactivate(self):
        self.is_active = False
        db.session.add(self)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "city": self.city,
            "country": self.country,
            "settings": self.settings,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
