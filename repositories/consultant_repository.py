"""
Consultant Repository for managing consultant database operations.
"""

import logging
import random
from typing import List, Optional
from sqlalchemy.orm import Session

from models import Consultant
from .base import BaseRepository

logger = logging.getLogger(__name__)

CODE_PREFIX = 'CONS'
MAX_CODE_ATTEMPTS = 50

class ConsultantRepository(BaseRepository):
    """Repository for Consultant model operations."""

    def __init__(self, session: Session):
        super().__init__(Consultant, session)

    def get_by_email(self, email: str) -> Optional[Consultant]:
        """Get consultant by email (case-insensitive)."""
        return self.get_by(email=email.strip().lower())

    def code_exists(self, code: str) -> bool:
        """Check whether a consultant code is already assigned."""
        return self.exists(code=code)

    def generate_unique_code(self, rng: Optional[random.Random] = None) -> str:
        """Generate an unused consultant code of the form CONS1234."""
        rng = rng or random
        for _ in range(MAX_CODE_ATTEMPTS):
            code = f"{CODE_PREFIX}{rng.randint(1000, 9999)}"
            if not self.code_exists(code):
                return code
        raise RuntimeError(f"Could not generate a unique consultant code after {MAX_CODE_ATTEMPTS} attempts")

    def get_by_external_id(self, external_id: int) -> Optional[Consultant]:
        """Get consultant by Odoo partner id."""
        return self.get_by(external_id=external_id)

    def get_unlinked(self) -> List[Consultant]:
        """Get consultants that have never been linked to an Odoo partner."""
        return self.filter({'external_id': None})

    def _linked_query(self, after_id: Optional[int], missing_photo_only: bool):
        query = self.session.query(Consultant).filter(Consultant.external_id.isnot(None))
        if missing_photo_only:
            query = query.filter(Consultant.profile_image_url.is_(None))
        if after_id is not None:
            query = query.filter(Consultant.id > after_id)
        return query

    def get_linked(self, limit: int, after_id: Optional[int] = None,
                   missing_photo_only: bool = True) -> List[Consultant]:
        """Get the next page of consultants linked to Odoo, by default only those without a photo."""
        return self._linked_query(after_id, missing_photo_only).order_by(Consultant.id).limit(limit).all()

    def count_linked(self, after_id: Optional[int] = None, missing_photo_only: bool = True) -> int:
        return self._linked_query(after_id, missing_photo_only).count()
