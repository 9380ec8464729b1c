"""
Event model: a bookable occurrence with a time window and a capacity.

Key design decisions:
- Attendee counts are never stored; reads aggregate over bookings
- `version` is bumped by every admitted booking so concurrent admissions
  for the same event serialize on the row (see booking_service)
- Index on `date` for calendar range queries, and on category/location
  for the list filters
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from eventhub.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=True)
    category = Column(String(100), nullable=False)
    location = Column(String(255), nullable=False)
    max_attendees = Column(Integer, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Admission counter
    version = Column(Integer, nullable=False, default=1, server_default="1")

    # Relationships
    creator = relationship("User", back_populates="events")
    bookings = relationship("Booking", back_populates="event", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("max_attendees > 0", name="max_attendees_positive"),
        CheckConstraint('end_date IS NULL OR end_date >= "date"', name="end_after_start"),
        Index("ix_events_date", "date"),
        Index("ix_events_category", "category"),
        Index("ix_events_location", "location"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, capacity={self.max_attendees})>"
