"""Ticket context data models."""

from typing import Optional

from pydantic import BaseModel


class TicketContext(BaseModel):
    """Requirements context loaded from the ticketing service."""

    key: str
    title: str = ""
    description: str = ""
    acceptance_criteria: str = ""
    status: Optional[str] = None
    priority: Optional[str] = None
    issue_type: Optional[str] = None
