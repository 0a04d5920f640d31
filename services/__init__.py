"""
Services package for the Odoo import backend.

This package contains the business logic that handles:
- Odoo XML-RPC access
- Category reconciliation
- Product and consultant imports
- Matching existing products and consultants with Odoo
- Consultant photo import
"""

from .odoo_client import OdooClient, ExternalCategory
from .category_reconciler import CategoryReconciler, CategoryReconcileResult
from .product_import_service import OdooProductImportService, ProductImportConfiguration, ProductImportResult
from .consultant_import_service import OdooConsultantImportService, ConsultantImportResult
from .product_match_service import ProductMatchService, ProductMatchResult
from .consultant_match_service import ConsultantMatchService, ConsultantMatchResult
from .consultant_photo_service import ConsultantPhotoService, ConsultantPhotoResult

__all__ = [
    'OdooClient',
    'ExternalCategory',
    'CategoryReconciler',
    'CategoryReconcileResult',
    'OdooProductImportService',
    'ProductImportConfiguration',
    'ProductImportResult',
    'OdooConsultantImportService',
    'ConsultantImportResult',
    'ProductMatchService',
    'ProductMatchResult',
    'ConsultantMatchService',
    'ConsultantMatchResult',
    'ConsultantPhotoService',
    'ConsultantPhotoResult'
]
