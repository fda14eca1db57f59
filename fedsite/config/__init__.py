import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).lower() in ('1', 'true', 'yes')


def _env_list(name: str) -> list[str]:
    raw = os.getenv(name, '')
    return [item.strip().lower() for item in raw.split(',') if item.strip()]


class Config:
    # Provide a safe development fallback to avoid 500s when SECRET_KEY is missing.
    SECRET_KEY = os.getenv('SECRET_KEY') or 'dev-secret-key-change-me'
    DATABASE_URL = os.getenv('DATABASE_URL')
    SQLALCHEMY_DATABASE_URI = DATABASE_URL or 'sqlite:///fedsite.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False

    # Multi-tenant host configuration
    # Example: ROOT_DOMAIN="fed.mx" makes club1.fed.mx resolve the "club1" microsite
    ROOT_DOMAIN = (os.getenv('ROOT_DOMAIN') or '').strip().lower().strip('.') or None
    # Labels that can never be claimed as a subdomain (www and api are always reserved)
    RESERVED_SUBDOMAINS = _env_list('RESERVED_SUBDOMAINS') or ['localhost', 'admin', 'static', 'mail']
    # Honour X-Forwarded-Host when running behind the federation's load balancer
    TRUST_FORWARDED_HOST = _env_flag('TRUST_FORWARDED_HOST', 'true')
    # Scheme used for the public links sent to owners
    PREFERRED_URL_SCHEME = os.getenv('PREFERRED_URL_SCHEME', 'https')

    # Auth Provider shared secret used to verify bearer tokens
    AUTH_TOKEN_SECRET = os.getenv('AUTH_TOKEN_SECRET') or SECRET_KEY
    AUTH_TOKEN_SALT = os.getenv('AUTH_TOKEN_SALT', 'fedsite-auth')
    AUTH_TOKEN_MAX_AGE = int(os.getenv('AUTH_TOKEN_MAX_AGE', '86400'))

    # Background notifications (RQ); notifications are only logged when unset
    REDIS_URL = os.getenv('REDIS_URL')
    NOTIFICATION_SERVICE_URL = os.getenv('NOTIFICATION_SERVICE_URL')
    NOTIFICATION_TIMEOUT = float(os.getenv('NOTIFICATION_TIMEOUT', '5'))

    # Media library
    # Defaults to <static>/uploads; point MEDIA_URL_PREFIX at whatever serves UPLOAD_FOLDER
    UPLOAD_FOLDER = os.getenv('UPLOAD_FOLDER')
    MEDIA_URL_PREFIX = os.getenv('MEDIA_URL_PREFIX', '/static/uploads')
    MEDIA_MAX_BYTES = int(os.getenv('MEDIA_MAX_BYTES', str(10 * 1024 * 1024)))
    MAX_CONTENT_LENGTH = MEDIA_MAX_BYTES + 1024 * 1024

    # Pagination
    DEFAULT_PAGE_SIZE = int(os.getenv('DEFAULT_PAGE_SIZE', '10'))
    MAX_PAGE_SIZE = int(os.getenv('MAX_PAGE_SIZE', '100'))

    # Rate limiting
    RATELIMIT_ENABLED = _env_flag('RATELIMIT_ENABLED', 'true')
    RATELIMIT_STORAGE_URI = os.getenv('RATELIMIT_STORAGE_URI', 'memory://')
