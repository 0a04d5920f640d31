"""
Odoo Import API Endpoints

REST endpoints that let an admin run the Odoo product and consultant
imports, match existing products and consultants with Odoo, copy consultant
photos and check the connection.
"""

import logging
from dataclasses import asdict

from flask import Blueprint, request, jsonify
from marshmallow import ValidationError

from config import Config, get_odoo_settings
from database import db_session_scope
from repositories import SyncLogRepository
from schemas import (
    ImportRequestSchema, MatchRequestSchema, ConsultantMatchRequestSchema,
    ConsultantPhotoRequestSchema, SyncLogSchema
)
from services.consultant_import_service import OdooConsultantImportService
from services.consultant_match_service import ConsultantMatchService
from services.consultant_photo_service import ConsultantPhotoService
from services.error_handler import OdooImportError
from services.image_storage import SupabaseImageStorage
from services.odoo_client import OdooClient
from services.product_import_service import OdooProductImportService
from services.product_match_service import ProductMatchService
from services.supabase_auth import admin_required, get_current_admin_id, SupabaseAccountProvisioner

logger = logging.getLogger(__name__)

# Create blueprint for Odoo endpoints
odoo_bp = Blueprint('odoo', __name__, url_prefix='/api/odoo')

SAMPLE_CATEGORY_COUNT = 5


def _build_odoo_client() -> OdooClient:
    return OdooClient.from_settings()


def _build_image_storage(bucket=None, folder='images'):
    try:
        return SupabaseImageStorage.from_env(bucket, folder)
    except ValueError as e:
        logger.warning(f"Image storage unavailable, importing without images: {e}")
        return None


def _build_consultant_storage():
    return _build_image_storage(Config.CONSULTANT_IMAGE_BUCKET, folder='')


def _build_provisioner():
    return SupabaseAccountProvisioner.from_env()


def _load_options(schema):
    return schema.load(request.get_json(silent=True) or {})


@odoo_bp.route('/import-products', methods=['POST'])
@admin_required
def import_products():
    """Import saleable products from Odoo."""
    try:
        options = _load_options(ImportRequestSchema())
    except ValidationError as e:
        return jsonify({'error': 'Invalid request', 'details': e.messages}), 400

    try:
        with db_session_scope() as session:
            service = OdooProductImportService(
                session,
                _build_odoo_client(),
                image_storage=_build_image_storage(),
                admin_id=get_current_admin_id()
            )
            result = service.run(dry_run=options['dry_run'], resume=options['resume'])
            return jsonify(result.to_response(Config.RESPONSE_ERROR_SAMPLE)), 200

    except OdooImportError as e:
        logger.error(f"Odoo product import failed: {e}")
        return jsonify({'error': str(e)}), 500
    except Exception as e:
        logger.error(f"Unexpected error importing products from Odoo: {e}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@odoo_bp.route('/import-consultants', methods=['POST'])
@admin_required
def import_consultants():
    """Import person contacts from Odoo as consultants."""
    try:
        options = _load_options(ImportRequestSchema())
    except ValidationError as e:
        return jsonify({'error': 'Invalid request', 'details': e.messages}), 400

    try:
        with db_session_scope() as session:
            service = OdooConsultantImportService(
                session,
                _build_odoo_client(),
                admin_id=get_current_admin_id(),
                provisioner=None if options['dry_run'] else _build_provisioner(),
                image_storage=None if options['dry_run'] else _build_consultant_storage()
            )
            result = service.run(dry_run=options['dry_run'])
            return jsonify(result.to_response(Config.RESPONSE_ERROR_SAMPLE)), 200

    except OdooImportError as e:
        logger.error(f"Odoo consultant import failed: {e}")
        return jsonify({'error': str(e)}), 500
    except Exception as e:
        logger.error(f"Unexpected error importing consultants from Odoo: {e}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@odoo_bp.route('/match-products', methods=['POST'])
@admin_required
def match_products():
    """Link local products without an Odoo id to Odoo products by SKU or name."""
    try:
        options = _load_options(MatchRequestSchema())
    except ValidationError as e:
        return jsonify({'error': 'Invalid request', 'details': e.messages}), 400

    try:
        with db_session_scope() as session:
            service = ProductMatchService(session, _build_odoo_client(), admin_id=get_current_admin_id())
            result = service.run(dry_run=options['dry_run'])
            return jsonify(result.to_response()), 200

    except OdooImportError as e:
        logger.error(f"Product matching failed: {e}")
        return jsonify({'error': str(e)}), 500
    except Exception as e:
        logger.error(f"Unexpected error matching products with Odoo: {e}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@odoo_bp.route('/match-consultants', methods=['POST'])
@admin_required
def match_consultants():
    """Link consultants without an Odoo id to Odoo partners by email."""
    try:
        options = _load_options(ConsultantMatchRequestSchema())
    except ValidationError as e:
        return jsonify({'error': 'Invalid request', 'details': e.messages}), 400

    try:
        with db_session_scope() as session:
            service = ConsultantMatchService(session, _build_odoo_client(), admin_id=get_current_admin_id())
            result = service.run(dry_run=options['dry_run'])
            return jsonify(result.to_response()), 200

    except OdooImportError as e:
        logger.error(f"Consultant matching failed: {e}")
        return jsonify({'error': str(e)}), 500
    except Exception as e:
        logger.error(f"Unexpected error matching consultants with Odoo: {e}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@odoo_bp.route('/import-consultant-photos', methods=['POST'])
@admin_required
def import_consultant_photos():
    """Copy Odoo photos of linked consultants into the consultant profiles bucket."""
    try:
        options = _load_options(ConsultantPhotoRequestSchema())
    except ValidationError as e:
        return jsonify({'error': 'Invalid request', 'details': e.messages}), 400

    image_storage = _build_consultant_storage()
    if image_storage is None:
        return jsonify({'error': 'Image storage is not configured'}), 500

    try:
        with db_session_scope() as session:
            service = ConsultantPhotoService(session, _build_odoo_client(), image_storage)
            result = service.run(
                limit=options['limit'],
                after_id=options['after_id'],
                force_update=options['force_update']
            )
            return jsonify(result.to_response()), 200

    except OdooImportError as e:
        logger.error(f"Consultant photo import failed: {e}")
        return jsonify({'error': str(e)}), 500
    except Exception as e:
        logger.error(f"Unexpected error importing consultant photos: {e}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@odoo_bp.route('/test-connection', methods=['GET'])
@admin_required
def test_connection():
    """Check the Odoo configuration and credentials."""
    settings = get_odoo_settings()
    if not settings.is_complete:
        return jsonify({
            'success': False,
            'error': 'Missing Odoo configuration',
            'missing': settings.missing()
        }), 500

    try:
        client = _build_odoo_client()
        uid = client.authenticate()
        version = client.version()
        categories = client.fetch_categories()
    except OdooImportError as e:
        logger.error(f"Odoo connection test failed: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500

    return jsonify({
        'success': True,
        'uid': uid,
        'serverVersion': version.get('server_version') if isinstance(version, dict) else None,
        'categoriesCount': len(categories),
        'sampleCategories': [asdict(category) for category in categories[:SAMPLE_CATEGORY_COUNT]]
    }), 200


@odoo_bp.route('/sync-logs', methods=['GET'])
@admin_required
def get_sync_logs():
    """Recent import runs of a given type."""
    sync_type = request.args.get('type', 'products')
    limit = request.args.get('limit', 10, type=int)

    with db_session_scope() as session:
        logs = SyncLogRepository(session).get_recent(sync_type, limit=min(max(limit, 1), 100))
        return jsonify({'logs': SyncLogSchema(many=True).dump(logs)}), 200
