"""Pytest configuration and fixtures for the test suite."""
import pytest
from contextlib import contextmanager
from datetime import datetime, timezone, timedelta

import jwt
from flask import Flask
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from models import Base, Admin
from services.error_handler import ImageUploadError
from services.odoo_client import ExternalCategory

TEST_JWT_SECRET = 'test-jwt-secret-with-at-least-32-bytes!!'
PNG_BASE64 = 'iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=='


class FakeOdooClient:
    """In-memory stand-in for OdooClient."""

    def __init__(self, categories=None, products=None, partners=None, product_refs=None,
                 auth_error=None, fetch_error=None):
        self.categories = categories or []
        self.products = products or []
        self.partners = partners or []
        self.product_refs = product_refs or []
        self.auth_error = auth_error
        self.fetch_error = fetch_error
        self.authenticated = False
        self.image_reads = []

    def authenticate(self):
        if self.auth_error:
            raise self.auth_error
        self.authenticated = True
        return 2

    def version(self):
        return {'server_version': '17.0'}

    def fetch_categories(self):
        return list(self.categories)

    def fetch_products(self, limit=5000):
        if self.fetch_error:
            raise self.fetch_error
        return list(self.products)[:limit]

    def fetch_partners(self, limit=1000):
        if self.fetch_error:
            raise self.fetch_error
        return list(self.partners)[:limit]

    def fetch_product_refs(self, limit=10000):
        return list(self.product_refs)[:limit]

    def fetch_partner_refs(self, limit=2000):
        return [
            {'id': p['id'], 'name': p.get('name'), 'email': p.get('email')}
            for p in self.partners
        ][:limit]

    def read_partner_images(self, partner_ids):
        self.image_reads.append(list(partner_ids))
        return [
            {'id': p['id'], 'name': p.get('name'), 'image_1920': p.get('image_1920', False)}
            for p in self.partners if p['id'] in partner_ids
        ]


class FakeImageStorage:
    """Records uploads; optionally fails every upload."""

    def __init__(self, fail=False):
        self.fail = fail
        self.uploads = []

    def upload_base64(self, b64_data, file_name):
        if self.fail:
            raise ImageUploadError("storage unavailable")
        self.uploads.append(file_name)
        return f"https://storage.example.com/products/images/{file_name}"


def make_category(external_id, name, parent_external_id=None, full_path=None):
    return ExternalCategory(
        external_id=external_id,
        name=name,
        parent_external_id=parent_external_id,
        full_path=full_path or name,
    )


def make_product(external_id, **overrides):
    """Odoo product.product record as returned by search_read."""
    record = {
        'id': external_id,
        'name': f'Product {external_id}',
        'default_code': f'SKU-{external_id}',
        'list_price': 100.0,
        'standard_price': 60.0,
        'qty_available': 5.0,
        'barcode': False,
        'categ_id': False,
        'image_1920': False,
        'description': False,
        'description_sale': f'Description {external_id}',
        'active': True,
        'type': 'product',
        'weight': 0.5,
        'volume': 0.0,
        'sale_line_warn': 'no-message',
        'purchase_line_warn': 'no-message',
    }
    record.update(overrides)
    return record


def make_partner(external_id, **overrides):
    """Odoo res.partner record as returned by search_read."""
    record = {
        'id': external_id,
        'name': f'Partner {external_id}',
        'email': f'partner{external_id}@example.com',
        'phone': '+351 210 000 000',
        'mobile': '+351 910 000 000',
        'vat': 'PT123456789',
        'street': 'Rua Augusta 1',
        'street2': False,
        'city': 'Lisboa',
        'zip': '1100-048',
        'state_id': False,
        'country_id': [183, 'Portugal'],
        'function': False,
        'website': False,
        'lang': 'pt_PT',
        'ref': False,
        'customer_rank': 1,
        'supplier_rank': 0,
        'credit_limit': 0.0,
        'property_payment_term_id': False,
        'category_id': [],
        'employee': False,
        'partner_share': True,
        'comment': False,
        'active': True,
        'image_1920': False,
    }
    record.update(overrides)
    return record


def make_token(sub='admin-1', email='admin@example.com', secret=TEST_JWT_SECRET, expires_in=3600):
    payload = {
        'sub': sub,
        'email': email,
        'role': 'authenticated',
        'exp': int((datetime.now(timezone.utc) + timedelta(seconds=expires_in)).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm='HS256')


@pytest.fixture
def engine():
    """In-memory SQLite database with all tables."""
    engine = create_engine(
        'sqlite://',
        poolclass=StaticPool,
        connect_args={'check_same_thread': False}
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Create a database session for a test."""
    Session = sessionmaker(bind=engine, expire_on_commit=False)
    session = Session()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def session_scope(db_session):
    """Drop-in replacement for database.db_session_scope bound to the test session."""
    @contextmanager
    def scope():
        try:
            yield db_session
            db_session.commit()
        except Exception:
            db_session.rollback()
            raise
    return scope


@pytest.fixture
def admin(db_session):
    admin = Admin(id='admin-1', email='admin@example.com', full_name='Admin', active=True)
    db_session.add(admin)
    db_session.commit()
    return admin


@pytest.fixture
def fake_storage():
    return FakeImageStorage()


@pytest.fixture
def jwt_secret(monkeypatch):
    monkeypatch.setenv('SUPABASE_JWT_SECRET', TEST_JWT_SECRET)
    return TEST_JWT_SECRET


@pytest.fixture
def flask_app():
    """Create a test Flask app with the Odoo blueprint."""
    from odoo_api import odoo_bp

    app = Flask(__name__)
    app.config['TESTING'] = True
    app.register_blueprint(odoo_bp)
    return app
