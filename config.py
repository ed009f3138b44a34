"""Configuration module for Flask application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '1') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')
    TESTING = False

    # Session Configuration (Production-safe defaults)
    SESSION_COOKIE_SECURE = os.getenv('SESSION_COOKIE_SECURE', 'false').lower() == 'true'
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.getenv('SESSION_COOKIE_SAMESITE', 'Lax')
    PERMANENT_SESSION_LIFETIME = 86400  # 24 hours

    # CSRF (Flask-WTF); JSON clients send X-CSRFToken from GET /session
    WTF_CSRF_ENABLED = os.getenv('WTF_CSRF_ENABLED', 'true').lower() == 'true'

    # Database - Support multiple environment variable naming conventions
    # Priority: DATABASE_URL > DB_* > POSTGRES_*
    DATABASE_URL = os.getenv('DATABASE_URL')

    if not DATABASE_URL:
        # Try DB_* variables (Docker style)
        DB_HOST = os.getenv('DB_HOST') or os.getenv('POSTGRES_HOST', 'localhost')
        DB_PORT = os.getenv('DB_PORT') or os.getenv('POSTGRES_PORT', '5432')
        DB_NAME = os.getenv('DB_NAME') or os.getenv('POSTGRES_DB', 'glasmastro')
        DB_USER = os.getenv('DB_USER') or os.getenv('POSTGRES_USER', 'glasmastro')
        DB_PASSWORD = os.getenv('DB_PASSWORD') or os.getenv('POSTGRES_PASSWORD', 'glasmastro')

        DATABASE_URL = (
            f"postgresql://{DB_USER}:{DB_PASSWORD}"
            f"@{DB_HOST}:{DB_PORT}/{DB_NAME}"
        )

    # SQLAlchemy
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'
    DB_CREATE_ALL = os.getenv('DB_CREATE_ALL', 'false').lower() == 'true'

    # Business Information (for offers/work orders/invoices)
    BUSINESS_NAME = os.getenv('BUSINESS_NAME', 'GlasMästro AB')
    BUSINESS_ADDRESS = os.getenv('BUSINESS_ADDRESS', 'Glasvägen 1, 123 45 Glasstad')
    BUSINESS_PHONE = os.getenv('BUSINESS_PHONE', '08-123 45 67')
    BUSINESS_EMAIL = os.getenv('BUSINESS_EMAIL', 'info@glasmastro.se')
    BUSINESS_ORG_NUMBER = os.getenv('BUSINESS_ORG_NUMBER', '556123-4567')
    BUSINESS_BANKGIRO = os.getenv('BUSINESS_BANKGIRO', '123-4567')
    OFFER_VALID_DAYS = int(os.getenv('OFFER_VALID_DAYS', '30'))
    INVOICE_PAYMENT_DAYS = int(os.getenv('INVOICE_PAYMENT_DAYS', '30'))

    # Pricing
    DEFAULT_TAX_DEDUCTION_PERCENT = os.getenv('DEFAULT_TAX_DEDUCTION_PERCENT', '30')
    DEFAULT_VAT_RATE = os.getenv('DEFAULT_VAT_RATE', '25')

    # Pagination
    DEFAULT_PAGE_SIZE = int(os.getenv('DEFAULT_PAGE_SIZE', '10'))

    # Redis Cache Configuration
    # Holds the catalog snapshot shared by the live order form and the server
    REDIS_URL = os.getenv('REDIS_URL', 'redis://redis:6379/0')
    CACHE_ENABLED = os.getenv('CACHE_ENABLED', 'true').lower() == 'true'
    CACHE_DEFAULT_TTL = int(os.getenv('CACHE_DEFAULT_TTL', '60'))  # seconds
    CACHE_CATALOG_TTL = int(os.getenv('CACHE_CATALOG_TTL', '3600'))
    CACHE_KEY_PREFIX = os.getenv('CACHE_KEY_PREFIX', 'glasmastro')


class TestingConfig(Config):
    """In-memory SQLite, no Redis, no CSRF."""

    TESTING = True
    DEBUG = False
    ENV = 'testing'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ECHO = False
    SQLALCHEMY_EXPIRE_ON_COMMIT = False
    DB_CREATE_ALL = True
    WTF_CSRF_ENABLED = False
    CACHE_ENABLED = False
