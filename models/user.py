from enum import Enum

from sqlalchemy import Boolean, Column, String
from sqlalchemy.orm import relationship
from sqlalchemy.types import Enum as SAEnum

from models.base_model import Base, BaseModel, TimestampMixin


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class User(TimestampMixin, BaseModel, Base):
    __tablename__ = "users"

    name = Column(String(255), nullable=False)
    # always stored lower-cased
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(SAEnum(Role, name="user_role", native_enum=False), nullable=False, default=Role.USER)
    is_active = Column(Boolean, nullable=False, default=True)

    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        cascade="all",
        passive_deletes=True,
    )

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    def __repr__(self):
        return f"<User id={self.id} email={self.email} role={self.role.value if self.role else None}>"
