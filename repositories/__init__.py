"""
Repository modules for database operations
"""

from .base import BaseRepository
from .admin_repository import AdminRepository
from .category_repository import CategoryRepository, CategoryMappingRepository
from .consultant_repository import ConsultantRepository
from .product_repository import ProductRepository, ProductImageRepository, ProductCategoryRepository
from .sync_log_repository import SyncLogRepository, AdminLogRepository, CheckpointRepository

__all__ = [
    'BaseRepository',
    'AdminRepository',
    'CategoryRepository',
    'CategoryMappingRepository',
    'ConsultantRepository',
    'ProductRepository',
    'ProductImageRepository',
    'ProductCategoryRepository',
    'SyncLogRepository',
    'AdminLogRepository',
    'CheckpointRepository'
]
