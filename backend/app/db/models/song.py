from sqlalchemy import BigInteger, Column, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class Song(Base, TimestampMixin):
    """One uploaded audio file and its place in the owner's playlist."""

    __tablename__ = "songs"

    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)

    # Track details
    title = Column(String(255), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_path = Column(String(512), nullable=False)
    duration = Column(Integer, nullable=False, default=0)  # seconds, 0 = unknown
    file_size = Column(BigInteger, nullable=True)
    mime_type = Column(String(100), nullable=False, default="audio/mpeg")

    # Zero-based; not unique-constrained so per-row position updates can't collide
    position = Column(Integer, nullable=False, default=0)

    # Relationships
    owner = relationship("Profile", back_populates="songs")

    __table_args__ = (Index("ix_songs_user_id_position", "user_id", "position"),)
