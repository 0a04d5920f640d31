"""
Product Repository for managing product, product image and product category link operations.
"""

import logging
from typing import Iterable, List, Optional, Tuple
from sqlalchemy.orm import Session

from models import Product, ProductImage, ProductCategory
from .base import BaseRepository

logger = logging.getLogger(__name__)

class ProductRepository(BaseRepository):
    """Repository for Product model operations."""

    def __init__(self, session: Session):
        super().__init__(Product, session)

    def get_by_external_id(self, external_id: int) -> Optional[Product]:
        """Get product by Odoo product id."""
        return self.get_by(external_id=external_id)

    def slug_taken(self, slug: str, exclude_external_id: Optional[int] = None) -> bool:
        """Check whether a product other than the given one already uses the slug."""
        query = self.session.query(Product.id).filter(Product.slug == slug)
        if exclude_external_id is not None:
            query = query.filter(
                (Product.external_id.is_(None)) | (Product.external_id != exclude_external_id)
            )
        return query.first() is not None

    def remove(self, product: Product) -> None:
        """Delete a product together with its category links and images."""
        self.session.query(ProductCategory).filter(
            ProductCategory.product_id == product.id
        ).delete(synchronize_session=False)
        self.session.delete(product)
        self.session.flush()

    def get_unmapped(self) -> List[Product]:
        """Get products that have never been linked to an Odoo product."""
        return self.filter({'external_id': None})

    def set_external_id(self, product: Product, external_id: int) -> Product:
        """Link a local product to an Odoo product id."""
        return self.update(product, external_id=external_id)


class ProductImageRepository(BaseRepository):
    """Repository for ProductImage model operations."""

    def __init__(self, session: Session):
        super().__init__(ProductImage, session)

    def get_primary(self, product_id: int) -> Optional[ProductImage]:
        """Get the primary image row of a product."""
        return self.get_by(product_id=product_id, is_primary=True)

    def upsert_primary(self, product_id: int, url: str, alt_text: str) -> Tuple[ProductImage, bool]:
        """Update the primary image in place, or insert one if the product has none."""
        image = self.get_primary(product_id)
        if image:
            return self.update(image, url=url, alt_text=alt_text, position=0), False

        return self.create(
            product_id=product_id,
            url=url,
            alt_text=alt_text,
            position=0,
            is_primary=True
        ), True

    def remove_primary(self, product_id: int) -> bool:
        """Delete the primary image row of a product that no longer has an image."""
        image = self.get_primary(product_id)
        if not image:
            return False
        self.session.delete(image)
        self.session.flush()
        return True


class ProductCategoryRepository(BaseRepository):
    """Repository for the product/category association table."""

    def __init__(self, session: Session):
        super().__init__(ProductCategory, session)

    def ensure_link(self, product_id: int, category_id: int) -> bool:
        """Link a product to a category if not already linked. Returns True when inserted."""
        _, created = self.get_or_create(product_id=product_id, category_id=category_id)
        return created

    def unlink_others(self, product_id: int, keep: Optional[int], among: Iterable[int]) -> int:
        """Drop links to the given categories except ``keep``. Returns the number removed."""
        stale = set(among)
        stale.discard(keep)
        if not stale:
            return 0
        removed = self.session.query(ProductCategory).filter(
            ProductCategory.product_id == product_id,
            ProductCategory.category_id.in_(stale)
        ).delete(synchronize_session=False)
        self.session.flush()
        return removed
