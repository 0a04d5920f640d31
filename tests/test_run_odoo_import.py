"""
Tests for the command line import runner
"""

import os
from unittest.mock import patch

import run_odoo_import
from logging_config import get_import_logger
from services.error_handler import AuthenticationError


def test_parse_args():
    args = run_odoo_import.parse_args(['products', '--dry-run', '--resume', '--admin-id', 'admin-1'])

    assert args.target == 'products'
    assert args.dry_run is True
    assert args.resume is True
    assert args.admin_id == 'admin-1'
    assert args.debug is False


@patch('run_odoo_import.close_database')
@patch('run_odoo_import.init_database')
def test_main_prints_summary(mock_init, mock_close, capsys):
    response = {
        'success': True, 'created': 2, 'updated': 1, 'errors': 0, 'total': 3,
        'details': {'processed': 3, 'skipped': 0, 'errorSample': []},
    }
    with patch('run_odoo_import.run', return_value=response):
        exit_code = run_odoo_import.main(['products', '--database-url', 'sqlite://'])

    assert exit_code == 0
    mock_init.assert_called_once_with('sqlite://', create_tables=True)
    mock_close.assert_called_once()
    assert 'created:' in capsys.readouterr().out


@patch('run_odoo_import.close_database')
@patch('run_odoo_import.init_database')
def test_main_fails_on_fatal_error(mock_init, mock_close):
    with patch('run_odoo_import.run', side_effect=AuthenticationError("invalid credentials")):
        exit_code = run_odoo_import.main(['consultants'])

    assert exit_code == 1
    mock_close.assert_called_once()


def test_import_logger_writes_per_pipeline_file(tmp_path):
    logger = get_import_logger('cli-test', str(tmp_path))
    logger.info("Processed 25/100 products")
    for handler in logger.handlers:
        handler.flush()

    log_file = os.path.join(str(tmp_path), 'imports', 'cli-test.log')
    with open(log_file) as f:
        assert 'Processed 25/100 products' in f.read()

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_parse_consultant_photo_paging():
    args = run_odoo_import.parse_args(['consultant-photos', '--limit', '20', '--after-id', '7', '--force-update'])

    assert args.target == 'consultant-photos'
    assert args.limit == 20
    assert args.after_id == 7
    assert args.force_update is True


@patch('run_odoo_import.close_database')
@patch('run_odoo_import.init_database')
def test_main_prints_flat_summary(mock_init, mock_close, capsys):
    response = {
        'success': True, 'dryRun': True, 'matched': 2, 'updated': 0, 'notFound': 1,
        'matchResults': [{'email': 'ana@example.com'}], 'notFoundEmails': ['rui@example.com'],
    }
    with patch('run_odoo_import.run', return_value=response):
        exit_code = run_odoo_import.main(['match-consultants', '--dry-run'])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert 'matched:' in out
    assert 'notFound:' in out
    assert 'matchResults' not in out
