"""
Odoo Product Import Service

Runs the product import end to end: authenticate with Odoo, reconcile the
category tree, fetch saleable products, then upsert them one at a time
keyed by Odoo id. Each record is committed on its own; a failing record is
counted and sampled and the loop moves on. The run finishes by appending
an admin audit entry and a sync log row.
"""

import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import Config
from models import Product, ProductStatus, SyncLogStatus, SyncType
from repositories import (
    ProductRepository, ProductImageRepository, ProductCategoryRepository,
    SyncLogRepository, AdminLogRepository, CheckpointRepository
)
from services.category_reconciler import CategoryReconciler, CategoryReconcileResult
from services.error_handler import (
    AuthenticationError, FetchError, ErrorSample, ImageUploadError, RecordUpsertError
)
from services.image_storage import ImageTransfer, product_image_name
from services.import_stats import ImportStats, RecordAction, RecordOutcome, format_ms
from services.odoo_client import OdooClient
from services.text_utils import disambiguate_slug, generate_sku, slugify

ADMIN_ACTION = 'IMPORT_PRODUCTS_FROM_ODOO'
SERVICE_PRODUCT_TYPE = 'service'


@dataclass
class ProductImportConfiguration:
    """Configuration for product import runs."""
    product_limit: int = Config.ODOO_PRODUCT_LIMIT
    progress_interval: int = Config.IMPORT_PROGRESS_INTERVAL
    admin_error_sample: int = Config.ADMIN_LOG_ERROR_SAMPLE
    response_error_sample: int = Config.RESPONSE_ERROR_SAMPLE


@dataclass
class ProductImportResult:
    """Final result of a product import run."""
    stats: ImportStats
    categories: CategoryReconcileResult
    duration_ms: float
    dry_run: bool = False
    resumed_from: Optional[int] = None

    def to_response(self, error_sample: int = Config.RESPONSE_ERROR_SAMPLE) -> Dict[str, Any]:
        stats = self.stats
        average = self.duration_ms / stats.total if stats.total else 0
        details = {
            'processed': stats.processed,
            'skipped': stats.skipped,
            'categoriesMapped': self.categories.mapped,
            'categoriesCreated': self.categories.created,
            'imagesProcessed': stats.images_processed,
            'imagesFailed': stats.images_failed,
            'errorSample': stats.error_log.sample(error_sample),
            'duration': format_ms(self.duration_ms),
            'averageTimePerProduct': format_ms(average),
        }
        if self.resumed_from is not None:
            details['resumedFrom'] = self.resumed_from

        response = {
            'success': True,
            'created': stats.created,
            'updated': stats.updated,
            'errors': stats.errors,
            'total': stats.total,
            'details': details,
        }
        if self.dry_run:
            response['dryRun'] = True
        return response


def _odoo_value(value):
    """Odoo sends False for empty fields."""
    return None if value is False else value


class OdooProductImportService:
    """Service for importing Odoo products into the local catalog."""

    def __init__(self, session: Session, odoo_client: OdooClient, image_storage=None,
                 admin_id: Optional[str] = None, config: Optional[ProductImportConfiguration] = None,
                 logger: Optional[logging.Logger] = None):
        """Initialize the import service.

        Args:
            session: Database session
            odoo_client: Client for the Odoo XML-RPC API
            image_storage: Object storage for product images; None disables uploads
            admin_id: Admin the run is attributed to
            config: Limits and sample sizes
            logger: Logger override, e.g. a per-import file logger
        """
        self.session = session
        self.odoo = odoo_client
        self.image_storage = image_storage
        self.admin_id = admin_id
        self.config = config or ProductImportConfiguration()
        self.logger = logger or logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        self.product_repo = ProductRepository(session)
        self.image_repo = ProductImageRepository(session)
        self.link_repo = ProductCategoryRepository(session)
        self.sync_log_repo = SyncLogRepository(session)
        self.admin_log_repo = AdminLogRepository(session)
        self.checkpoint_repo = CheckpointRepository(session)

    def run(self, dry_run: bool = False, resume: bool = False) -> ProductImportResult:
        """Import all saleable Odoo products.

        Args:
            dry_run: Classify records as create/update/skip without writing anything
            resume: Skip records up to the checkpoint left by an interrupted run

        Raises:
            AuthenticationError, FetchError: the run was aborted before the record loop
        """
        started_at = datetime.utcnow()
        start = time.monotonic()
        self.logger.info(f"Starting Odoo product import (dry_run={dry_run}, resume={resume})")

        try:
            self.odoo.authenticate()
            categories = CategoryReconciler(self.session, dry_run=dry_run).reconcile(
                self.odoo.fetch_categories()
            )
            products = self.odoo.fetch_products(limit=self.config.product_limit)
        except (AuthenticationError, FetchError) as e:
            self.logger.error(f"Odoo product import aborted: {e}")
            if not dry_run:
                self._log_failed_run(e, started_at)
            raise

        resume_after = None
        if resume:
            resume_after = self.checkpoint_repo.get_last_external_id(SyncType.PRODUCTS.value)
            if resume_after is not None:
                self.logger.info(f"Resuming after Odoo product id {resume_after}")

        stats = ImportStats(total=len(products))
        # The cursor only covers an unbroken run of committed records, so a
        # resume retries the first failure and everything after it
        cursor_blocked = dry_run
        for index, record in enumerate(products, start=1):
            outcome = self.process_record(record, categories, dry_run=dry_run, resume_after=resume_after)
            stats.record(outcome)

            if outcome.action is RecordAction.FAILED:
                cursor_blocked = True
            elif not cursor_blocked and outcome.action in (RecordAction.CREATED, RecordAction.UPDATED):
                self._advance_checkpoint(record.get('id'))

            if index % self.config.progress_interval == 0:
                self.logger.info(f"Progress update: {stats.progress()}")

        duration_ms = (time.monotonic() - start) * 1000
        result = ProductImportResult(
            stats=stats,
            categories=categories,
            duration_ms=duration_ms,
            dry_run=dry_run,
            resumed_from=resume_after,
        )

        if not dry_run:
            self._write_summary(result, started_at)

        self.logger.info(
            f"Odoo product import finished: {stats.created} created, {stats.updated} updated, "
            f"{stats.errors} errors, {stats.skipped} skipped of {stats.total} in {format_ms(duration_ms)}"
        )
        return result

    def process_record(self, record: Dict[str, Any], categories: CategoryReconcileResult,
                       dry_run: bool = False, resume_after: Optional[int] = None) -> RecordOutcome:
        """Upsert a single Odoo product and report what happened."""
        external_id = record.get('id')

        if resume_after is not None and external_id is not None and external_id <= resume_after:
            return RecordOutcome.skipped()

        try:
            if record.get('type') == SERVICE_PRODUCT_TYPE:
                self.logger.debug(f"Skipping service product {external_id}")
                if not dry_run:
                    self._discard_service_product(external_id)
                return RecordOutcome.skipped()
            if dry_run:
                return self._plan_record(record)
            return self._upsert_record(record, categories)
        except Exception as e:
            self.session.rollback()
            error = e if isinstance(e, RecordUpsertError) else RecordUpsertError(str(e))
            self.logger.error(f"Error processing product {record.get('name')} ({external_id}): {error}")
            return RecordOutcome.failed(ErrorSample(
                name=record.get('name') or '',
                external_id=external_id,
                sku=_odoo_value(record.get('default_code')),
                error=str(error),
            ))

    def _discard_service_product(self, external_id: int) -> None:
        """Service items are never kept locally, even if an earlier run imported them as goods."""
        existing = self.product_repo.get_by_external_id(external_id)
        if existing:
            self.logger.info(f"Removing product {existing.sku}: Odoo product {external_id} is now a service")
            self.product_repo.remove(existing)
            self.session.commit()

    def _plan_record(self, record: Dict[str, Any]) -> RecordOutcome:
        existing = self.product_repo.get_by_external_id(record['id'])
        return RecordOutcome(RecordAction.UPDATED if existing else RecordAction.CREATED)

    def _upsert_record(self, record: Dict[str, Any], categories: CategoryReconcileResult) -> RecordOutcome:
        external_id = record['id']
        existing = self.product_repo.get_by_external_id(external_id)

        fields = self.map_product_fields(record, categories, existing)
        image = self._transfer_image(record)
        fields['primary_image_url'] = image.url
        fields['embedded_image_backup'] = image.backup

        if existing:
            product = self.product_repo.update(existing, **fields)
            action = RecordAction.UPDATED
        else:
            product = self.product_repo.create(external_id=external_id, **fields)
            action = RecordAction.CREATED
        self.session.commit()

        if image.url:
            self.image_repo.upsert_primary(product.id, image.url, product.name)
        elif action is RecordAction.UPDATED:
            self.image_repo.remove_primary(product.id)

        imported_categories = set(categories.category_map.values())
        self.link_repo.unlink_others(product.id, keep=product.category_id, among=imported_categories)
        if product.category_id:
            self.link_repo.ensure_link(product.id, product.category_id)
        self.session.commit()

        self.logger.debug(f"{action.value.capitalize()} product {product.sku} (odoo id {external_id})")
        return RecordOutcome(
            action,
            image_processed=image.url is not None,
            image_failed=image.failed,
        )

    def map_product_fields(self, record: Dict[str, Any], categories: CategoryReconcileResult,
                           existing: Optional[Product] = None) -> Dict[str, Any]:
        """Map an Odoo product.product record onto local product columns.

        Every mapped column is overwritten on update; nothing is merged with
        the previous values except a synthetic SKU, which is kept stable
        across runs when Odoo has no internal reference.
        """
        external_id = record['id']
        name = record.get('name') or ''
        list_price = record.get('list_price') or 0
        standard_price = record.get('standard_price') or 0
        qty_available = record.get('qty_available') or 0
        categ = record.get('categ_id')
        now = datetime.utcnow()

        sku = _odoo_value(record.get('default_code'))
        if not sku:
            sku = existing.sku if existing and existing.sku else generate_sku()

        slug = slugify(name) or f"product-{external_id}"
        if self.product_repo.slug_taken(slug, exclude_external_id=external_id):
            slug = disambiguate_slug(slug, external_id)

        return {
            'name': name,
            'slug': slug,
            'description': _odoo_value(record.get('description_sale')) or _odoo_value(record.get('description')) or '',
            'price': list_price,
            'sale_price': standard_price if standard_price < list_price else None,
            'sku': sku,
            'stock_quantity': math.floor(qty_available),
            'category_id': categories.resolve(categ),
            'active': record.get('active') is not False,
            'status': ProductStatus.ACTIVE.value if qty_available > 0 else ProductStatus.OUT_OF_STOCK.value,
            'meta_data': {
                'barcode': _odoo_value(record.get('barcode')),
                'weight': record.get('weight'),
                'volume': record.get('volume'),
                'odoo_category_name': categ[1] if categ else None,
                'sale_line_warn': _odoo_value(record.get('sale_line_warn')),
                'purchase_line_warn': _odoo_value(record.get('purchase_line_warn')),
                'standard_price': standard_price,
            },
            'last_stock_sync_at': now,
            'imported_at': now,
        }

    def _transfer_image(self, record: Dict[str, Any]) -> ImageTransfer:
        image_data = _odoo_value(record.get('image_1920'))
        if not image_data or self.image_storage is None:
            return ImageTransfer()

        try:
            url = self.image_storage.upload_base64(image_data, product_image_name(record['id']))
        except ImageUploadError as e:
            self.logger.warning(f"Image upload failed for product {record['id']}, importing without image: {e}")
            return ImageTransfer(backup=image_data, failed=True)

        return ImageTransfer(url=url)

    def _advance_checkpoint(self, external_id: Optional[int]) -> None:
        if external_id is None:
            return
        try:
            self.checkpoint_repo.advance(SyncType.PRODUCTS.value, external_id)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            self.logger.warning(f"Could not advance import checkpoint to {external_id}: {e}")

    def _write_summary(self, result: ProductImportResult, started_at: datetime) -> None:
        stats = result.stats
        self.admin_log_repo.log_action(
            self.admin_id,
            ADMIN_ACTION,
            'product',
            {
                'total_products': stats.total,
                'created': stats.created,
                'updated': stats.updated,
                'errors': stats.errors,
                'skipped': stats.skipped,
                'error_details': stats.error_log.sample(self.config.admin_error_sample),
                'categories_mapped': result.categories.mapped,
                'categories_created': result.categories.created,
                'images_processed': stats.images_processed,
                'images_failed': stats.images_failed,
                'duration': format_ms(result.duration_ms),
            }
        )
        self.sync_log_repo.log_run(
            SyncType.PRODUCTS.value,
            SyncLogStatus.PARTIAL.value if stats.errors > 0 else SyncLogStatus.SUCCESS.value,
            records_synced=stats.synced,
            records_failed=stats.errors,
            error_message=f"{stats.errors} products failed to import" if stats.errors > 0 else None,
            metadata={
                'created': stats.created,
                'updated': stats.updated,
                'skipped': stats.skipped,
                'total': stats.total,
                'categories_mapped': result.categories.mapped,
            },
            started_at=started_at,
        )
        self.checkpoint_repo.clear(SyncType.PRODUCTS.value)
        self.session.commit()

    def _log_failed_run(self, error: Exception, started_at: datetime) -> None:
        self.session.rollback()
        self.sync_log_repo.log_run(
            SyncType.PRODUCTS.value,
            SyncLogStatus.ERROR.value,
            error_message=str(error),
            metadata={'stage': error.category.value},
            started_at=started_at,
        )
        self.session.commit()
