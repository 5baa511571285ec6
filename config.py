import os
import secrets
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_int(name, default):
    try:
        return int(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


def _env_float(name, default=None):
    value = os.environ.get(name)
    if value in (None, ''):
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_flag(name, default='false'):
    return os.environ.get(name, default).lower() in ['true', 'on', '1']


class Config:
    # Security
    SECRET_KEY = os.environ.get('SECRET_KEY')
    if not SECRET_KEY:
        # Sessions are not used; a per-process key is enough for development
        SECRET_KEY = secrets.token_hex(32)

    # Persistence collaborator used by the HTTP repositories
    GOODLIFE_API_URL = os.environ.get('GOODLIFE_API_URL', 'http://localhost:5054/api')
    GOODLIFE_HTTP_TIMEOUT = _env_float('GOODLIFE_HTTP_TIMEOUT')  # None = no timeout

    # Planning defaults
    DEFAULT_VISION_AGE = _env_int('DEFAULT_VISION_AGE', 30)

    # Reconciliation
    ROLLBACK_ON_FAILURE = _env_flag('ROLLBACK_ON_FAILURE')
    DOMAIN_CACHE_TTL_SECONDS = _env_int('DOMAIN_CACHE_TTL_SECONDS', 60)

    # Seed the demo student plan on startup
    SEED_DEMO_DATA = _env_flag('SEED_DEMO_DATA')

    # Root logging level applied by create_app
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'ERROR')
