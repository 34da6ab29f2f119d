from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class Profile(Base, TimestampMixin):
    """Persisted identity record; the id equals the auth provider's user id."""

    __tablename__ = "profiles"

    email = Column(String(255), nullable=False)
    name = Column(String(255), nullable=True)

    # Relationships
    songs = relationship("Song", back_populates="owner")
    playlists = relationship("Playlist", back_populates="owner")
