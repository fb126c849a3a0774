"""
RefreshToken model: one row per issued refresh token so tokens can be revoked and rotated
Fields:
- token (unique) - the signed refresh token itself
- user_id - FK to users.id
- created_at, expires_at

Rows are only ever inserted or deleted, never updated.
"""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from models.base_model import Base, BaseModel


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(512), nullable=False, unique=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    user = relationship("User", back_populates="refresh_tokens")

    # ids of deleted records are never handed out again
    __table_args__ = {"sqlite_autoincrement": True}

    def __repr__(self):
        return f"<RefreshToken id={self.id} user_id={self.user_id} expires_at={self.expires_at}>"
