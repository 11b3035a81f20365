from sqlalchemy import Column, String, Enum, JSON

from app.core.db import Base
from app.models.base.mixins import TimestampMixin
from app.models.enums.access_type import AccessType


class Feature(Base, TimestampMixin):
    """One row of the role/feature matrix. Mutable at runtime by admins."""

    __tablename__ = "features"

    axis = Column(Enum(AccessType, name="feature_axis"), primary_key=True)
    id = Column(String(100), primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(String, nullable=False, default="")
    allowed_roles = Column(JSON, nullable=False, default=list)

    def __repr__(self):
        return f"<Feature {self.axis.value}:{self.id} roles={self.allowed_roles}>"


class Role(Base, TimestampMixin):
    __tablename__ = "roles"

    axis = Column(Enum(AccessType, name="role_axis"), primary_key=True)
    id = Column(String(100), primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(String, nullable=False, default="")

    def __repr__(self):
        return f"<Role {self.axis.value}:{self.id}>"
