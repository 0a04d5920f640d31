"""
Admin Repository for resolving back-office administrators.
"""

from typing import Optional
from sqlalchemy.orm import Session

from models import Admin
from .base import BaseRepository

class AdminRepository(BaseRepository):
    """Repository for Admin model operations."""

    def __init__(self, session: Session):
        super().__init__(Admin, session)

    def get_active(self, user_id: str) -> Optional[Admin]:
        """Get an active admin by auth user id."""
        return self.get_by(id=user_id, active=True)
