"""
User model with secure password storage and a coarse role.
"""

from sqlalchemy import Column, Integer, String, CheckConstraint
from sqlalchemy.orm import relationship

from eventhub.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="user", server_default="user")

    # Relationships
    events = relationship("Event", back_populates="creator", passive_deletes=True)
    bookings = relationship("Booking", back_populates="user", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("role IN ('user', 'admin')", name="user_role"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
