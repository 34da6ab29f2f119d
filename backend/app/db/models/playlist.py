from sqlalchemy import Boolean, Column, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class Playlist(Base, TimestampMixin):
    """Named grouping of songs. Only the default one is ever provisioned."""

    __tablename__ = "playlists"

    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)

    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)

    # Relationships
    owner = relationship("Profile", back_populates="playlists")
