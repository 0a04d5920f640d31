"""Configuration module for the Odoo import backend."""
import os
from dataclasses import dataclass, field
from typing import List
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Base configuration."""
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

    # Database configuration
    DATABASE_URL = os.getenv("DATABASE_URL")
    DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
    DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))

    LOG_PATH = os.getenv("LOG_PATH", os.path.join(os.getcwd(), 'logs'))

    # Supabase configuration
    SUPABASE_URL = os.getenv("SUPABASE_URL")
    SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET")
    PRODUCT_IMAGE_BUCKET = os.getenv("PRODUCT_IMAGE_BUCKET", "products")
    CONSULTANT_IMAGE_BUCKET = os.getenv("CONSULTANT_IMAGE_BUCKET", "consultant-profiles")

    # Odoo import configuration
    ODOO_TIMEOUT = int(os.getenv("ODOO_TIMEOUT", "120"))  # seconds
    ODOO_PRODUCT_LIMIT = int(os.getenv("ODOO_PRODUCT_LIMIT", "5000"))
    ODOO_PARTNER_LIMIT = int(os.getenv("ODOO_PARTNER_LIMIT", "1000"))
    ODOO_PARTNER_MATCH_LIMIT = int(os.getenv("ODOO_PARTNER_MATCH_LIMIT", "2000"))
    CONSULTANT_PHOTO_BATCH = 10
    IMPORT_PROGRESS_INTERVAL = int(os.getenv("IMPORT_PROGRESS_INTERVAL", "25"))
    ADMIN_LOG_ERROR_SAMPLE = 10
    RESPONSE_ERROR_SAMPLE = 5

    # CORS
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    DATABASE_URL = "sqlite:///:memory:"


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


ODOO_ENV_VARS = ('ODOO_URL', 'ODOO_DB', 'ODOO_USERNAME', 'ODOO_API_KEY')


@dataclass
class OdooSettings:
    """Connection settings for the Odoo XML-RPC endpoint."""
    url: str = ''
    db: str = ''
    username: str = ''
    api_key: str = ''
    timeout: int = Config.ODOO_TIMEOUT
    missing_vars: List[str] = field(default_factory=list)

    def missing(self) -> List[str]:
        return list(self.missing_vars)

    @property
    def is_complete(self) -> bool:
        return not self.missing_vars


def get_odoo_settings() -> OdooSettings:
    """Read the Odoo settings from the environment at call time."""
    values = {name: os.getenv(name, '') for name in ODOO_ENV_VARS}
    return OdooSettings(
        url=values['ODOO_URL'].rstrip('/'),
        db=values['ODOO_DB'],
        username=values['ODOO_USERNAME'],
        api_key=values['ODOO_API_KEY'],
        timeout=int(os.getenv("ODOO_TIMEOUT", str(Config.ODOO_TIMEOUT))),
        missing_vars=[name for name, value in values.items() if not value],
    )
