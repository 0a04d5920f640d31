"""
Tests for the Odoo consultant import service
"""

import pytest
from unittest.mock import Mock

from conftest import FakeOdooClient, FakeImageStorage, make_partner, PNG_BASE64
from models import AdminLog, Consultant, SyncLog
from services.consultant_import_service import OdooConsultantImportService, map_partner_fields
from services.error_handler import AuthenticationError, RecordUpsertError


@pytest.fixture
def provisioner():
    provisioner = Mock()
    provisioner.find_or_create_user.side_effect = lambda email, full_name: f"user-{email}"
    return provisioner


class TestPartnerMapping:
    """Test the res.partner field mapping."""

    def test_maps_contact_and_address_fields(self):
        fields = map_partner_fields(make_partner(
            7,
            email=' Maria@Example.com ',
            phone=False,
            state_id=[12, 'Lisboa'],
            property_payment_term_id=[3, '30 Days'],
            comment='VIP',
        ))

        assert fields['email'] == 'maria@example.com'
        assert fields['phone'] == '+351 910 000 000'
        assert fields['whatsapp'] == '+351 910 000 000'
        assert fields['tax_id'] == 'PT123456789'
        assert fields['address_state'] == 'Lisboa'
        assert fields['address_country'] == 'PO'
        assert fields['payment_term_id'] == 3
        assert fields['notes'] == 'VIP'
        assert fields['commission_percentage'] == 10.0
        assert fields['commission_period_days'] == 45
        assert fields['status'] == 'active'
        assert fields['consent_version'] == '1.0.0'

    def test_defaults_for_missing_values(self):
        fields = map_partner_fields(make_partner(8, country_id=False, lang=False, active=False))

        assert fields['address_country'] == 'PT'
        assert fields['lang'] == 'pt_BR'
        assert fields['status'] == 'inactive'
        assert fields['address_complement'] == ''


class TestConsultantImport:
    """Test consultant upserts keyed by email."""

    def test_creates_consultants_with_codes_and_users(self, db_session, provisioner):
        odoo = FakeOdooClient(partners=[make_partner(1), make_partner(2)])
        service = OdooConsultantImportService(db_session, odoo, admin_id='admin-1', provisioner=provisioner)

        response = service.run().to_response()

        assert response['created'] == 2
        consultants = db_session.query(Consultant).order_by(Consultant.external_id).all()
        assert [c.email for c in consultants] == ['partner1@example.com', 'partner2@example.com']
        assert all(c.code.startswith('CONS') and len(c.code) == 8 for c in consultants)
        assert consultants[0].code != consultants[1].code
        assert consultants[0].user_id == 'user-partner1@example.com'
        assert consultants[0].created_by == 'admin-1'

    def test_rerun_updates_by_email(self, db_session, provisioner):
        service = OdooConsultantImportService(
            db_session, FakeOdooClient(partners=[make_partner(1, city='Porto')]), provisioner=provisioner
        )
        service.run()
        code = db_session.query(Consultant).one().code

        service = OdooConsultantImportService(
            db_session, FakeOdooClient(partners=[make_partner(1, city='Braga')]), provisioner=provisioner
        )
        response = service.run().to_response()

        consultant = db_session.query(Consultant).one()
        assert response['updated'] == 1
        assert consultant.address_city == 'Braga'
        assert consultant.code == code
        assert provisioner.find_or_create_user.call_count == 1

    def test_partner_without_email_is_skipped(self, db_session):
        odoo = FakeOdooClient(partners=[make_partner(1, email=False), make_partner(2)])
        response = OdooConsultantImportService(db_session, odoo).run().to_response()

        assert response['details']['skipped'] == 1
        assert response['created'] == 1
        assert response['created'] + response['updated'] + response['errors'] + response['details']['skipped'] == response['total']

    def test_provisioning_failure_is_a_record_error(self, db_session):
        provisioner = Mock()
        provisioner.find_or_create_user.side_effect = RecordUpsertError("Failed to create auth user")
        odoo = FakeOdooClient(partners=[make_partner(1)])

        response = OdooConsultantImportService(db_session, odoo, provisioner=provisioner).run().to_response()

        assert response['errors'] == 1
        assert response['details']['errorSample'][0]['partner'] == 'Partner 1'
        assert response['details']['errorSample'][0]['email'] == 'partner1@example.com'
        assert db_session.query(Consultant).count() == 0
        assert db_session.query(SyncLog).one().status == 'partial'

    def test_summary_logs(self, db_session):
        odoo = FakeOdooClient(partners=[make_partner(1)])
        OdooConsultantImportService(db_session, odoo, admin_id='admin-1').run()

        admin_log = db_session.query(AdminLog).one()
        assert admin_log.action == 'IMPORT_CONSULTANTS_FROM_ODOO'
        assert admin_log.entity_type == 'consultant'
        sync_log = db_session.query(SyncLog).one()
        assert sync_log.sync_type == 'consultants'
        assert sync_log.status == 'success'

    def test_dry_run_writes_nothing(self, db_session, provisioner):
        odoo = FakeOdooClient(partners=[make_partner(1)])
        response = OdooConsultantImportService(db_session, odoo, provisioner=provisioner).run(dry_run=True).to_response()

        assert response['dryRun'] is True
        assert response['created'] == 1
        assert db_session.query(Consultant).count() == 0
        assert db_session.query(SyncLog).count() == 0
        provisioner.find_or_create_user.assert_not_called()

    def test_authentication_failure_aborts(self, db_session):
        odoo = FakeOdooClient(auth_error=AuthenticationError("bad key"))

        with pytest.raises(AuthenticationError):
            OdooConsultantImportService(db_session, odoo).run()

        sync_log = db_session.query(SyncLog).one()
        assert sync_log.status == 'error'
        assert sync_log.error_message == 'bad key'


class TestConsultantPhotos:
    """Test partner photo transfer during the consultant import."""

    def test_photo_uploaded_and_url_stored(self, db_session):
        storage = FakeImageStorage()
        odoo = FakeOdooClient(partners=[make_partner(4, image_1920=PNG_BASE64)])

        response = OdooConsultantImportService(db_session, odoo, image_storage=storage).run().to_response()

        consultant = db_session.query(Consultant).one()
        assert storage.uploads[0].startswith('consultant-4-')
        assert consultant.profile_image_url.endswith(storage.uploads[0])
        assert consultant.embedded_image is None
        assert response['details']['imagesProcessed'] == 1
        assert response['details']['imagesFailed'] == 0

    def test_failed_upload_keeps_photo_for_later(self, db_session):
        odoo = FakeOdooClient(partners=[make_partner(4, image_1920=PNG_BASE64)])

        response = OdooConsultantImportService(
            db_session, odoo, image_storage=FakeImageStorage(fail=True)
        ).run().to_response()

        consultant = db_session.query(Consultant).one()
        assert response['created'] == 1
        assert response['errors'] == 0
        assert response['details']['imagesFailed'] == 1
        assert consultant.profile_image_url is None
        assert consultant.embedded_image == PNG_BASE64

    def test_existing_photo_is_not_uploaded_again(self, db_session):
        storage = FakeImageStorage()
        odoo = FakeOdooClient(partners=[make_partner(4, image_1920=PNG_BASE64)])
        OdooConsultantImportService(db_session, odoo, image_storage=storage).run()
        first_url = db_session.query(Consultant).one().profile_image_url

        OdooConsultantImportService(db_session, odoo, image_storage=storage).run()

        assert len(storage.uploads) == 1
        assert db_session.query(Consultant).one().profile_image_url == first_url

    def test_partner_without_photo_uploads_nothing(self, db_session):
        storage = FakeImageStorage()
        odoo = FakeOdooClient(partners=[make_partner(4)])

        OdooConsultantImportService(db_session, odoo, image_storage=storage).run()

        assert storage.uploads == []
        assert db_session.query(Consultant).one().profile_image_url is None
