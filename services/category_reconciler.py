"""
Category Reconciler

Maps every Odoo product category onto a local category. Existing mappings
are reused as-is; otherwise the category is matched by slug or created,
and a mapping row is recorded so later runs resolve it directly.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from repositories import CategoryRepository, CategoryMappingRepository
from services.error_handler import CategoryReconcileError
from services.odoo_client import ExternalCategory
from services.text_utils import slugify

logger = logging.getLogger(__name__)


@dataclass
class CategoryReconcileResult:
    """Outcome of one reconciliation pass."""
    category_map: Dict[int, int] = field(default_factory=dict)
    created: int = 0
    reused: int = 0
    failed: int = 0

    @property
    def mapped(self) -> int:
        return len(self.category_map)

    def resolve(self, categ_field) -> Optional[int]:
        """Resolve an Odoo many2one value ([id, name] or False) to a local category id."""
        if not categ_field:
            return None
        return self.category_map.get(categ_field[0])


class CategoryReconciler:
    """Reconciles the Odoo category tree with local categories."""

    def __init__(self, session: Session, dry_run: bool = False):
        self.session = session
        self.dry_run = dry_run
        self.category_repo = CategoryRepository(session)
        self.mapping_repo = CategoryMappingRepository(session)

    def reconcile(self, categories: Iterable[ExternalCategory]) -> CategoryReconcileResult:
        result = CategoryReconcileResult()

        for category in categories:
            try:
                local_id, created = self._reconcile_one(category)
            except CategoryReconcileError as e:
                logger.warning(f"Skipping category {category.external_id} ({category.full_path}): {e}")
                result.failed += 1
                continue

            if local_id is not None:
                result.category_map[category.external_id] = local_id
            if created:
                result.created += 1
            else:
                result.reused += 1

        logger.info(
            f"Categories reconciled: {result.mapped} mapped, {result.created} created, "
            f"{result.reused} reused, {result.failed} failed"
        )
        return result

    def _reconcile_one(self, category: ExternalCategory):
        """Returns (local_category_id, created)."""
        try:
            mapping = self.mapping_repo.get_by_external_id(category.external_id)
            if mapping:
                return mapping.local_category_id, False

            slug = slugify(category.name) or f"category-{category.external_id}"
            existing = self.category_repo.get_by_slug(slug)

            if self.dry_run:
                return (existing.id if existing else None), existing is None

            created = existing is None
            local = existing or self.category_repo.create_imported(category.name, slug, category.full_path)
            mapping, _ = self.mapping_repo.ensure_mapping(category.external_id, category.full_path, local.id)
            local_id = mapping.local_category_id
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise CategoryReconcileError(str(e)) from e

        if created:
            logger.debug(f"Created category '{slug}' for Odoo category {category.external_id}")
        return local_id, created
