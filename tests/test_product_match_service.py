"""
Tests for matching local products with Odoo products
"""

import pytest

from conftest import FakeOdooClient
from models import AdminLog, Product
from services.product_match_service import ProductMatchService


@pytest.fixture
def local_products(db_session):
    products = [
        Product(name='Blue Pen', slug='blue-pen', sku='PEN-1'),
        Product(name='A4 Paper Ream', slug='a4-paper-ream', sku='LOCAL-9'),
        Product(name='Stapler', slug='stapler', sku='ST-1'),
        Product(external_id=500, name='Already Linked', slug='already-linked', sku='LNK-1'),
    ]
    db_session.add_all(products)
    db_session.commit()
    return products


@pytest.fixture
def odoo():
    return FakeOdooClient(product_refs=[
        {'id': 1, 'name': 'Caneta Azul', 'default_code': 'pen-1'},
        {'id': 2, 'name': 'a4 paper ream', 'default_code': False},
        {'id': 3, 'name': 'Glue', 'default_code': 'GL-1'},
    ])


class TestProductMatchService:
    """Test SKU-then-name matching."""

    def test_preview_reports_without_writing(self, db_session, local_products, odoo):
        response = ProductMatchService(db_session, odoo).run(dry_run=True).to_response()

        assert response['dryRun'] is True
        assert response['stats'] == {'total': 3, 'matched': 2, 'updated': 0, 'noMatches': 1}
        assert [(m['localName'], m['odooId'], m['matchType']) for m in response['matches']] == [
            ('Blue Pen', 1, 'SKU'),
            ('A4 Paper Ream', 2, 'NAME'),
        ]
        assert response['noMatches'] == [{'id': local_products[2].id, 'name': 'Stapler', 'sku': 'ST-1'}]
        assert db_session.query(Product).filter(Product.external_id.is_(None)).count() == 3
        assert db_session.query(AdminLog).count() == 0

    def test_apply_links_products(self, db_session, local_products, odoo):
        response = ProductMatchService(db_session, odoo, admin_id='admin-1').run(dry_run=False).to_response()

        assert response['stats']['updated'] == 2
        assert local_products[0].external_id == 1
        assert local_products[1].external_id == 2
        assert local_products[2].external_id is None

        admin_log = db_session.query(AdminLog).one()
        assert admin_log.action == 'MATCH_PRODUCTS_WITH_ODOO'
        assert admin_log.details['updated'] == 2

    def test_odoo_product_claimed_once(self, db_session, odoo):
        db_session.add_all([
            Product(name='Blue Pen', slug='blue-pen', sku='PEN-1'),
            Product(name='Blue Pen Copy', slug='blue-pen-copy', sku='PEN-1'),
        ])
        db_session.commit()

        response = ProductMatchService(db_session, odoo).run(dry_run=False).to_response()

        assert response['stats']['matched'] == 1
        assert response['stats']['noMatches'] == 1

    def test_already_linked_odoo_id_is_not_reused(self, db_session, local_products):
        odoo = FakeOdooClient(product_refs=[{'id': 500, 'name': 'Stapler', 'default_code': False}])

        response = ProductMatchService(db_session, odoo).run(dry_run=False).to_response()

        assert response['stats']['matched'] == 1
        assert response['stats']['updated'] == 0
        assert local_products[2].external_id is None
        assert db_session.query(AdminLog).count() == 0
