"""
Odoo Consultant Import Service

Imports Odoo person contacts (res.partner) as consultants, keyed by email.
New consultants receive a unique code and, when an account provisioner is
configured, a linked auth user. Partner photos are uploaded to the consultant
profiles bucket when image storage is configured.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from config import Config
from models import ConsultantStatus, SyncLogStatus, SyncType
from repositories import ConsultantRepository, SyncLogRepository, AdminLogRepository
from services.error_handler import (
    AuthenticationError, ErrorCollector, ErrorSample, FetchError, ImageUploadError, RecordUpsertError
)
from services.image_storage import ImageTransfer, consultant_image_name
from services.import_stats import ImportStats, RecordAction, RecordOutcome, format_ms
from services.odoo_client import OdooClient

ADMIN_ACTION = 'IMPORT_CONSULTANTS_FROM_ODOO'
DEFAULT_COUNTRY = 'PT'
DEFAULT_LANG = 'pt_BR'
DEFAULT_COMMISSION_PERCENTAGE = 10.0
DEFAULT_COMMISSION_PERIOD_DAYS = 45
CONSENT_VERSION = '1.0.0'


@dataclass
class ConsultantImportConfiguration:
    """Configuration for consultant import runs."""
    partner_limit: int = Config.ODOO_PARTNER_LIMIT
    progress_interval: int = 10
    admin_error_sample: int = Config.ADMIN_LOG_ERROR_SAMPLE
    response_error_sample: int = Config.RESPONSE_ERROR_SAMPLE


@dataclass
class ConsultantImportResult:
    """Final result of a consultant import run."""
    stats: ImportStats
    duration_ms: float
    dry_run: bool = False

    def to_response(self, error_sample: int = Config.RESPONSE_ERROR_SAMPLE) -> Dict[str, Any]:
        stats = self.stats
        average = self.duration_ms / stats.total if stats.total else 0
        response = {
            'success': True,
            'created': stats.created,
            'updated': stats.updated,
            'errors': stats.errors,
            'total': stats.total,
            'details': {
                'processed': stats.processed,
                'skipped': stats.skipped,
                'imagesProcessed': stats.images_processed,
                'imagesFailed': stats.images_failed,
                'errorSample': stats.error_log.sample(error_sample),
                'duration': format_ms(self.duration_ms),
                'averageTimePerRecord': format_ms(average),
            },
        }
        if self.dry_run:
            response['dryRun'] = True
        return response


def _text(value) -> str:
    return value or ''


def map_partner_fields(partner: Dict[str, Any]) -> Dict[str, Any]:
    """Map an Odoo res.partner record onto consultant columns."""
    state = partner.get('state_id')
    country = partner.get('country_id')
    payment_term = partner.get('property_payment_term_id')

    return {
        'external_id': partner.get('id'),
        'full_name': _text(partner.get('name')),
        'email': partner['email'].strip().lower(),
        'phone': _text(partner.get('phone') or partner.get('mobile')),
        'whatsapp': _text(partner.get('mobile') or partner.get('phone')),
        'mobile': _text(partner.get('mobile')),
        'tax_id': _text(partner.get('vat')),
        'address_street': _text(partner.get('street')),
        'address_complement': _text(partner.get('street2')),
        'address_city': _text(partner.get('city')),
        'address_postal_code': _text(partner.get('zip')),
        'address_state': state[1] if state else '',
        'address_country': country[1][:2].upper() if country else DEFAULT_COUNTRY,
        'function': _text(partner.get('function')),
        'website': _text(partner.get('website')),
        'lang': partner.get('lang') or DEFAULT_LANG,
        'ref': _text(partner.get('ref')),
        'customer_rank': partner.get('customer_rank') or 0,
        'supplier_rank': partner.get('supplier_rank') or 0,
        'credit_limit': partner.get('credit_limit') or 0,
        'payment_term_id': payment_term[0] if payment_term else None,
        'category_ids': partner.get('category_id') or [],
        'is_employee': bool(partner.get('employee')),
        'partner_share': partner.get('partner_share') is not False,
        'notes': _text(partner.get('comment')),
        'commission_percentage': DEFAULT_COMMISSION_PERCENTAGE,
        'commission_period_days': DEFAULT_COMMISSION_PERIOD_DAYS,
        'status': ConsultantStatus.ACTIVE.value if partner.get('active') else ConsultantStatus.INACTIVE.value,
        'consent_date': datetime.utcnow(),
        'consent_version': CONSENT_VERSION,
    }


class OdooConsultantImportService:
    """Service for importing Odoo partners as consultants."""

    def __init__(self, session: Session, odoo_client: OdooClient, admin_id: Optional[str] = None,
                 provisioner=None, image_storage=None, config: Optional[ConsultantImportConfiguration] = None,
                 logger: Optional[logging.Logger] = None):
        self.session = session
        self.odoo = odoo_client
        self.admin_id = admin_id
        self.provisioner = provisioner
        self.image_storage = image_storage
        self.config = config or ConsultantImportConfiguration()
        self.logger = logger or logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        self.consultant_repo = ConsultantRepository(session)
        self.sync_log_repo = SyncLogRepository(session)
        self.admin_log_repo = AdminLogRepository(session)

    def run(self, dry_run: bool = False) -> ConsultantImportResult:
        started_at = datetime.utcnow()
        start = time.monotonic()
        self.logger.info(f"Starting Odoo consultant import (dry_run={dry_run})")

        try:
            self.odoo.authenticate()
            partners = self.odoo.fetch_partners(limit=self.config.partner_limit)
        except (AuthenticationError, FetchError) as e:
            self.logger.error(f"Odoo consultant import aborted: {e}")
            if not dry_run:
                self._log_failed_run(e, started_at)
            raise

        stats = ImportStats(total=len(partners), error_log=ErrorCollector(name_key='partner'))
        for index, partner in enumerate(partners, start=1):
            stats.record(self.process_partner(partner, dry_run=dry_run))
            if index % self.config.progress_interval == 0:
                self.logger.info(f"Progress update: {stats.progress()}")

        result = ConsultantImportResult(
            stats=stats,
            duration_ms=(time.monotonic() - start) * 1000,
            dry_run=dry_run,
        )
        if not dry_run:
            self._write_summary(result, started_at)

        self.logger.info(
            f"Odoo consultant import finished: {stats.created} created, {stats.updated} updated, "
            f"{stats.errors} errors, {stats.skipped} skipped of {stats.total}"
        )
        return result

    def process_partner(self, partner: Dict[str, Any], dry_run: bool = False) -> RecordOutcome:
        """Upsert a single partner by email."""
        email = (partner.get('email') or '').strip()
        if not email:
            self.logger.debug(f"Skipping partner {partner.get('id')}: no email")
            return RecordOutcome.skipped()

        try:
            existing = self.consultant_repo.get_by_email(email)
            if dry_run:
                return RecordOutcome(RecordAction.UPDATED if existing else RecordAction.CREATED)

            fields = map_partner_fields(partner)
            fields['created_by'] = self.admin_id

            photo = self._transfer_photo(partner, existing)
            if photo.url:
                fields['profile_image_url'] = photo.url
            fields['embedded_image'] = photo.backup

            if existing:
                self.consultant_repo.update(existing, **fields)
                action = RecordAction.UPDATED
            else:
                fields['code'] = self.consultant_repo.generate_unique_code()
                if self.provisioner is not None:
                    fields['user_id'] = self.provisioner.find_or_create_user(fields['email'], fields['full_name'])
                self.consultant_repo.create(**fields)
                action = RecordAction.CREATED
            self.session.commit()
            return RecordOutcome(action, image_processed=photo.url is not None, image_failed=photo.failed)

        except Exception as e:
            self.session.rollback()
            error = e if isinstance(e, RecordUpsertError) else RecordUpsertError(str(e))
            self.logger.error(f"Error processing partner {partner.get('name')} <{email}>: {error}")
            return RecordOutcome.failed(ErrorSample(
                name=partner.get('name') or '',
                external_id=partner.get('id'),
                email=email,
                error=str(error),
            ))

    def _transfer_photo(self, partner: Dict[str, Any], existing) -> ImageTransfer:
        """Upload the partner photo unless the consultant already has one.

        Without storage, or when the upload fails, the raw image stays in
        embedded_image for a later photo import.
        """
        image_data = partner.get('image_1920') or None
        if not image_data:
            return ImageTransfer()
        if existing is not None and existing.profile_image_url:
            return ImageTransfer()
        if self.image_storage is None:
            return ImageTransfer(backup=image_data)

        try:
            url = self.image_storage.upload_base64(image_data, consultant_image_name(partner['id']))
        except ImageUploadError as e:
            self.logger.warning(f"Photo upload failed for partner {partner['id']}: {e}")
            return ImageTransfer(backup=image_data, failed=True)
        return ImageTransfer(url=url)

    def _write_summary(self, result: ConsultantImportResult, started_at: datetime) -> None:
        stats = result.stats
        self.admin_log_repo.log_action(
            self.admin_id,
            ADMIN_ACTION,
            'consultant',
            {
                'total_partners': stats.total,
                'created': stats.created,
                'updated': stats.updated,
                'errors': stats.errors,
                'skipped': stats.skipped,
                'images_processed': stats.images_processed,
                'images_failed': stats.images_failed,
                'error_details': stats.error_log.sample(self.config.admin_error_sample),
                'duration': format_ms(result.duration_ms),
            }
        )
        self.sync_log_repo.log_run(
            SyncType.CONSULTANTS.value,
            SyncLogStatus.PARTIAL.value if stats.errors > 0 else SyncLogStatus.SUCCESS.value,
            records_synced=stats.synced,
            records_failed=stats.errors,
            error_message=f"{stats.errors} consultants failed to import" if stats.errors > 0 else None,
            metadata={'created': stats.created, 'updated': stats.updated, 'skipped': stats.skipped, 'total': stats.total},
            started_at=started_at,
        )
        self.session.commit()

    def _log_failed_run(self, error: Exception, started_at: datetime) -> None:
        self.session.rollback()
        self.sync_log_repo.log_run(
            SyncType.CONSULTANTS.value,
            SyncLogStatus.ERROR.value,
            error_message=str(error),
            metadata={'stage': error.category.value},
            started_at=started_at,
        )
        self.session.commit()
