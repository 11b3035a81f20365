from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum
from sqlalchemy.sql import func
from app.core.db import Base
from app.models.enums.access_type import AccessType


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String(150), unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    # Internal roles: admin, manager, sales...; external roles are ext_ prefixed
    role = Column(String(50), nullable=False, default="sales")
    access_type = Column(Enum(AccessType, name="access_type"), nullable=False, default=AccessType.internal)
    department = Column(String(100), nullable=True)
    company = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    token_version = Column(Integer, nullable=False, default=0)
    last_login = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<User id={self.id} username={self.username} role={self.role} access={self.access_type}>"
