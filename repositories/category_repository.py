"""
Category Repository for managing category and category mapping database operations.
"""

import logging
from typing import Optional, Tuple
from sqlalchemy.orm import Session

from models import Category, CategoryMapping
from .base import BaseRepository

logger = logging.getLogger(__name__)

class CategoryRepository(BaseRepository):
    """Repository for Category model operations."""

    def __init__(self, session: Session):
        super().__init__(Category, session)

    def get_by_slug(self, slug: str) -> Optional[Category]:
        """Get category by slug."""
        return self.get_by(slug=slug)

    def create_imported(self, name: str, slug: str, full_path: str) -> Category:
        """Create a category that originates from Odoo."""
        return self.create(
            name=name,
            slug=slug,
            description=f"Imported from Odoo: {full_path}"
        )


class CategoryMappingRepository(BaseRepository):
    """Repository for CategoryMapping model operations."""

    def __init__(self, session: Session):
        super().__init__(CategoryMapping, session)

    def get_by_external_id(self, external_id: int) -> Optional[CategoryMapping]:
        """Get the mapping for an Odoo category id."""
        return self.get_by(external_id=external_id)

    def ensure_mapping(self, external_id: int, full_path: str, local_category_id: int) -> Tuple[CategoryMapping, bool]:
        """Insert the mapping unless one already exists for the external id."""
        return self.get_or_create(
            defaults={
                'external_full_path': full_path,
                'local_category_id': local_category_id
            },
            external_id=external_id
        )
