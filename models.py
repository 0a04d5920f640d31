"""
Database Models for the Odoo Import Backend

This module contains SQLAlchemy models for the catalog, consultant and
audit tables written by the Odoo import pipelines.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Float, JSON, Index, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
import enum

Base = declarative_base()

# Enums for type safety
class SyncLogStatus(enum.Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"

class ProductStatus(enum.Enum):
    ACTIVE = "active"
    OUT_OF_STOCK = "out_of_stock"

class ConsultantStatus(enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    PENDING = "pending"

class SyncType(enum.Enum):
    PRODUCTS = "products"
    CONSULTANTS = "consultants"


class Admin(Base):
    """Back-office administrator, keyed by the auth provider's user id."""
    __tablename__ = 'admins'

    id = Column(String(255), primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255))
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Admin(id={self.id}, email='{self.email}')>"


class Category(Base):
    """Local catalog category."""
    __tablename__ = 'categories'

    id = Column(Integer, primary_key=True)
    name = Column(String(500), nullable=False)
    slug = Column(String(500), unique=True, nullable=False, index=True)
    description = Column(Text)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    mappings = relationship("CategoryMapping", back_populates="local_category")

    def __repr__(self):
        return f"<Category(id={self.id}, slug='{self.slug}')>"


class CategoryMapping(Base):
    """Persistent correspondence between an Odoo category and a local category."""
    __tablename__ = 'category_mappings'

    id = Column(Integer, primary_key=True)
    external_id = Column(Integer, unique=True, nullable=False, index=True)
    external_full_path = Column(String(1000))
    local_category_id = Column(Integer, ForeignKey('categories.id'), nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    local_category = relationship("Category", back_populates="mappings")

    def __repr__(self):
        return f"<CategoryMapping(external_id={self.external_id}, local_category_id={self.local_category_id})>"


class Product(Base):
    """Local product, upserted from Odoo by external id."""
    __tablename__ = 'products'

    id = Column(Integer, primary_key=True)
    external_id = Column(Integer, unique=True, index=True)  # Odoo product.product id

    name = Column(String(500), nullable=False)
    slug = Column(String(500), nullable=False, index=True)
    description = Column(Text)
    sku = Column(String(100), nullable=False, index=True)

    # Pricing
    price = Column(Float, default=0.0, nullable=False)
    sale_price = Column(Float)

    # Inventory
    stock_quantity = Column(Integer, default=0, nullable=False)
    status = Column(String(20), default=ProductStatus.ACTIVE.value, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    featured = Column(Boolean, default=False, nullable=False)

    category_id = Column(Integer, ForeignKey('categories.id'))

    # Images
    primary_image_url = Column(String(1000))
    embedded_image_backup = Column(Text)

    meta_data = Column('metadata', JSON)

    last_stock_sync_at = Column(DateTime)
    imported_at = Column(DateTime)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    category = relationship("Category")
    images = relationship("ProductImage", back_populates="product", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_product_category_status', 'category_id', 'status'),
    )

    def __repr__(self):
        return f"<Product(id={self.id}, external_id={self.external_id}, sku='{self.sku}')>"


class ProductImage(Base):
    """Product image row; at most one primary per product."""
    __tablename__ = 'product_images'

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey('products.id'), nullable=False, index=True)
    url = Column(String(1000), nullable=False)
    alt_text = Column(String(500))
    position = Column(Integer, default=0, nullable=False)
    is_primary = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    product = relationship("Product", back_populates="images")


class ProductCategory(Base):
    """Many-to-many link between products and categories."""
    __tablename__ = 'product_categories'

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey('products.id'), nullable=False)
    category_id = Column(Integer, ForeignKey('categories.id'), nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('product_id', 'category_id', name='uq_product_category'),
    )


class Consultant(Base):
    """Consultant (affiliate) imported from Odoo partners, keyed by email."""
    __tablename__ = 'consultants'

    id = Column(Integer, primary_key=True)
    code = Column(String(20), unique=True, nullable=False, index=True)
    external_id = Column(Integer, index=True)  # Odoo res.partner id
    user_id = Column(String(255))  # Auth provider user id

    full_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone = Column(String(50))
    whatsapp = Column(String(50))
    mobile = Column(String(50))
    tax_id = Column(String(50))

    # Address
    address_street = Column(String(255))
    address_complement = Column(String(255))
    address_city = Column(String(100))
    address_postal_code = Column(String(20))
    address_state = Column(String(100))
    address_country = Column(String(2), default='PT')

    # Odoo partner details
    function = Column(String(255))
    website = Column(String(255))
    lang = Column(String(10))
    ref = Column(String(100))
    customer_rank = Column(Integer, default=0)
    supplier_rank = Column(Integer, default=0)
    credit_limit = Column(Float, default=0.0)
    payment_term_id = Column(Integer)
    category_ids = Column(JSON)
    is_employee = Column(Boolean, default=False)
    partner_share = Column(Boolean, default=True)
    notes = Column(Text)
    profile_image_url = Column(String(1000))
    embedded_image = Column(Text)  # Odoo photo kept until it reaches storage

    # Commission program
    commission_percentage = Column(Float, default=10.0, nullable=False)
    commission_period_days = Column(Integer, default=45, nullable=False)
    iban = Column(String(50))
    status = Column(String(20), default=ConsultantStatus.PENDING.value, nullable=False)

    consent_date = Column(DateTime)
    consent_version = Column(String(20))
    created_by = Column(String(255))
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Consultant(id={self.id}, code='{self.code}', email='{self.email}')>"


class SyncLog(Base):
    """Append-only record of one import run."""
    __tablename__ = 'sync_logs'

    id = Column(Integer, primary_key=True)
    sync_type = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False)
    records_synced = Column(Integer, default=0, nullable=False)
    records_failed = Column(Integer, default=0, nullable=False)
    error_message = Column(Text)
    meta_data = Column('metadata', JSON)
    started_at = Column(DateTime, default=func.now(), nullable=False)
    completed_at = Column(DateTime)

    __table_args__ = (
        Index('idx_sync_log_type_started', 'sync_type', 'started_at'),
    )


class AdminLog(Base):
    """Append-only audit entry attributing an action to an admin."""
    __tablename__ = 'admin_logs'

    id = Column(Integer, primary_key=True)
    admin_id = Column(String(255), index=True)
    action = Column(String(100), nullable=False)
    entity_type = Column(String(50))
    details = Column(JSON)
    created_at = Column(DateTime, default=func.now(), nullable=False)


class ImportCheckpoint(Base):
    """Cursor of the last committed external id for a resumable import."""
    __tablename__ = 'import_checkpoints'

    id = Column(Integer, primary_key=True)
    sync_type = Column(String(50), unique=True, nullable=False)
    last_external_id = Column(Integer, nullable=False)
    records_done = Column(Integer, default=0, nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)
