#!/usr/bin/env python3
"""
Command line launcher for the Odoo imports.
Runs the product or consultant import, the product or consultant matching
pass, or a page of consultant photo uploads against the configured database
with colored progress output.
"""

import sys
import time
import logging
import argparse
from colorama import init, Fore, Style

from dotenv import load_dotenv
load_dotenv()

from config import Config
from database import init_database, db_session_scope, close_database
from logging_config import get_import_logger
from services.consultant_import_service import OdooConsultantImportService
from services.consultant_match_service import ConsultantMatchService
from services.consultant_photo_service import ConsultantPhotoService
from services.error_handler import OdooImportError
from services.image_storage import SupabaseImageStorage
from services.odoo_client import OdooClient
from services.product_import_service import OdooProductImportService
from services.product_match_service import ProductMatchService
from services.supabase_auth import SupabaseAccountProvisioner

TARGETS = ['products', 'consultants', 'match', 'match-consultants', 'consultant-photos']


class ColoredFormatter(logging.Formatter):
    """Custom formatter for colored log output"""

    COLORS = {
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.RED + Style.BRIGHT,
        'DEBUG': Fore.CYAN
    }

    def format(self, record):
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{Style.RESET_ALL}"
        return super().format(record)


def setup_logging(debug=False):
    """Configure logging with colors and formatting"""
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if debug else logging.INFO)

    ch = logging.StreamHandler()
    ch.setFormatter(ColoredFormatter(
        f'{Fore.BLUE}%(asctime)s{Style.RESET_ALL} - %(levelname)s - %(message)s'
    ))
    logger.addHandler(ch)

    return logger


def parse_args(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(description='Import products or consultants from Odoo')
    parser.add_argument('target', choices=TARGETS, help='What to import')
    parser.add_argument('--dry-run', action='store_true', help='Report intended changes without writing')
    parser.add_argument('--resume', action='store_true', help='Continue an interrupted product import')
    parser.add_argument('--limit', type=int, default=50, help='Consultants per consultant-photos page')
    parser.add_argument('--after-id', type=int, default=None, help='Continue consultant-photos after this id')
    parser.add_argument('--force-update', action='store_true', help='Replace consultant photos already stored')
    parser.add_argument('--admin-id', default=None, help='Admin id recorded in the audit log')
    parser.add_argument('--database-url', default=None, help='Override DATABASE_URL')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    return parser.parse_args(argv)


def print_summary(response):
    """Print the counters of a finished run"""
    print(f"\n{Fore.CYAN}{'='*80}{Style.RESET_ALL}")
    sections = [response.get('stats', response), response.get('details', {})]
    for section in sections:
        for key, value in section.items():
            if isinstance(value, (list, dict)) or key in ('stats', 'details'):
                continue
            print(f"{Fore.YELLOW}{key}:{Style.RESET_ALL} {value}")
    for sample in response.get('details', {}).get('errorSample', []):
        print(f"{Fore.RED}✗{Style.RESET_ALL} {sample}")
    print(f"{Fore.CYAN}{'='*80}{Style.RESET_ALL}\n")


def _image_storage(bucket, folder, logger):
    try:
        return SupabaseImageStorage.from_env(bucket, folder)
    except ValueError as e:
        logger.warning(f"Image storage unavailable: {e}")
        return None


def run(args):
    """Run the selected import and return its JSON-style summary"""
    odoo_client = OdooClient.from_settings()
    import_logger = get_import_logger(args.target, Config.LOG_PATH)

    with db_session_scope() as session:
        if args.target == 'products':
            image_storage = None if args.dry_run else _image_storage(None, 'images', import_logger)
            service = OdooProductImportService(
                session, odoo_client, image_storage=image_storage,
                admin_id=args.admin_id, logger=import_logger
            )
            return service.run(dry_run=args.dry_run, resume=args.resume).to_response()

        if args.target == 'consultants':
            image_storage = None
            if not args.dry_run:
                image_storage = _image_storage(Config.CONSULTANT_IMAGE_BUCKET, '', import_logger)
            service = OdooConsultantImportService(
                session, odoo_client, admin_id=args.admin_id,
                provisioner=None if args.dry_run else SupabaseAccountProvisioner.from_env(),
                image_storage=image_storage,
                logger=import_logger
            )
            return service.run(dry_run=args.dry_run).to_response()

        if args.target == 'match-consultants':
            service = ConsultantMatchService(session, odoo_client, admin_id=args.admin_id)
            return service.run(dry_run=args.dry_run).to_response()

        if args.target == 'consultant-photos':
            image_storage = _image_storage(Config.CONSULTANT_IMAGE_BUCKET, '', import_logger)
            if image_storage is None:
                raise OdooImportError("Image storage is not configured")
            service = ConsultantPhotoService(session, odoo_client, image_storage, logger=import_logger)
            return service.run(
                limit=args.limit, after_id=args.after_id, force_update=args.force_update
            ).to_response()

        return ProductMatchService(session, odoo_client, admin_id=args.admin_id).run(dry_run=args.dry_run).to_response()


def main(argv=None):
    """Main workflow execution"""
    init(autoreset=True)
    args = parse_args(argv)
    logger = setup_logging(args.debug)
    start_time = time.time()

    try:
        init_database(args.database_url, create_tables=True)
        response = run(args)
    except OdooImportError as e:
        logger.error(f"{Fore.RED}Import aborted: {e}{Style.RESET_ALL}")
        return 1
    finally:
        close_database()

    print_summary(response)
    logger.info(f"{Fore.GREEN}✓{Style.RESET_ALL} Finished in {time.time() - start_time:.1f}s")
    return 0


if __name__ == '__main__':
    sys.exit(main())
