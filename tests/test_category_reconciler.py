"""
Tests for the Odoo category reconciler
"""

import pytest
from unittest.mock import patch
from sqlalchemy.exc import SQLAlchemyError

from conftest import make_category
from models import Category, CategoryMapping
from services.category_reconciler import CategoryReconciler


@pytest.fixture
def odoo_categories():
    return [
        make_category(1, 'All', full_path='All'),
        make_category(2, 'Papelaria', 1, 'All / Papelaria'),
        make_category(3, 'Escritório', 1, 'All / Escritório'),
    ]


class TestCategoryReconciler:
    """Test category reconciliation against local categories."""

    def test_creates_categories_and_mappings(self, db_session, odoo_categories):
        result = CategoryReconciler(db_session).reconcile(odoo_categories)

        assert result.created == 3
        assert result.reused == 0
        assert result.mapped == 3
        assert db_session.query(Category).count() == 3
        assert db_session.query(CategoryMapping).count() == 3

        office = db_session.query(Category).filter_by(slug='escritorio').one()
        assert office.name == 'Escritório'
        assert office.description == 'Imported from Odoo: All / Escritório'
        assert result.category_map[3] == office.id

    def test_second_run_inserts_nothing(self, db_session, odoo_categories):
        CategoryReconciler(db_session).reconcile(odoo_categories)
        second = CategoryReconciler(db_session).reconcile(odoo_categories)

        assert second.created == 0
        assert second.reused == 3
        assert db_session.query(Category).count() == 3
        for category in odoo_categories:
            assert db_session.query(CategoryMapping).filter_by(external_id=category.external_id).count() == 1

    def test_adopts_existing_category_with_same_slug(self, db_session):
        existing = Category(name='Papelaria', slug='papelaria', description='Manual')
        db_session.add(existing)
        db_session.commit()

        result = CategoryReconciler(db_session).reconcile([make_category(2, 'Papelaria')])

        assert result.created == 0
        assert result.reused == 1
        assert result.category_map == {2: existing.id}
        mapping = db_session.query(CategoryMapping).filter_by(external_id=2).one()
        assert mapping.local_category_id == existing.id
        assert existing.description == 'Manual'

    def test_existing_mapping_wins_over_slug(self, db_session):
        target = Category(name='Renamed', slug='renamed')
        db_session.add(target)
        db_session.flush()
        db_session.add(CategoryMapping(external_id=9, external_full_path='Old', local_category_id=target.id))
        db_session.commit()

        result = CategoryReconciler(db_session).reconcile([make_category(9, 'Brand New Name')])

        assert result.category_map == {9: target.id}
        assert db_session.query(Category).filter_by(slug='brand-new-name').count() == 0

    def test_failed_category_is_skipped(self, db_session, odoo_categories):
        reconciler = CategoryReconciler(db_session)
        original_create = reconciler.category_repo.create_imported

        def flaky_create(name, slug, full_path):
            if slug == 'papelaria':
                raise SQLAlchemyError("insert failed")
            return original_create(name, slug, full_path)

        with patch.object(reconciler.category_repo, 'create_imported', side_effect=flaky_create):
            result = reconciler.reconcile(odoo_categories)

        assert result.failed == 1
        assert 2 not in result.category_map
        assert result.resolve([2, 'All / Papelaria']) is None
        assert result.resolve([3, 'All / Escritório']) is not None
        assert db_session.query(CategoryMapping).count() == 2

    def test_lookup_failure_is_skipped(self, db_session, odoo_categories):
        reconciler = CategoryReconciler(db_session)
        original_lookup = reconciler.mapping_repo.get_by_external_id

        def flaky_lookup(external_id):
            if external_id == 3:
                raise SQLAlchemyError("connection reset")
            return original_lookup(external_id)

        with patch.object(reconciler.mapping_repo, 'get_by_external_id', side_effect=flaky_lookup):
            result = reconciler.reconcile(odoo_categories)

        assert result.failed == 1
        assert 3 not in result.category_map
        assert set(result.category_map) == {1, 2}

    def test_slug_lookup_failure_is_skipped(self, db_session):
        reconciler = CategoryReconciler(db_session)

        with patch.object(reconciler.category_repo, 'get_by_slug', side_effect=SQLAlchemyError("timeout")):
            result = reconciler.reconcile([make_category(1, 'All')])

        assert result.failed == 1
        assert result.category_map == {}

    def test_dry_run_writes_nothing(self, db_session, odoo_categories):
        result = CategoryReconciler(db_session, dry_run=True).reconcile(odoo_categories)

        assert result.created == 3
        assert db_session.query(Category).count() == 0
        assert db_session.query(CategoryMapping).count() == 0

    def test_resolve_handles_missing_category(self, db_session):
        result = CategoryReconciler(db_session).reconcile([make_category(1, 'All')])

        assert result.resolve(False) is None
        assert result.resolve([99, 'Unknown']) is None
        assert result.resolve([1, 'All']) == result.category_map[1]
