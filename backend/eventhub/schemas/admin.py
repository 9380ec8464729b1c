"""
Pydantic schemas for the admin dashboard.
"""

from pydantic import BaseModel


class StatsResponse(BaseModel):
    total_users: int
    total_events: int
    total_bookings: int
    upcoming_events: int


class MessageResponse(BaseModel):
    message: str
