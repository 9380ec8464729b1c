"""
Booking model linking one user to one event.

Key design decisions:
- Unique constraint on (user_id, event_id) rejects duplicate bookings even
  when two requests race past the application-level check
- Bookings are hard-deleted on cancellation and cascade with their event
"""

from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from eventhub.db.base import Base, TimestampMixin


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)

    # Relationships
    user = relationship("User", back_populates="bookings")
    event = relationship("Event", back_populates="bookings")

    __table_args__ = (
        UniqueConstraint("user_id", "event_id", name="uq_user_event_booking"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, user={self.user_id}, event={self.event_id})>"
