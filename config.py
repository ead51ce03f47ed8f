import os
from urllib.parse import quote_plus

from dotenv import load_dotenv

load_dotenv()

REQUIRED_DB_VARS = ['DB_HOST', 'DB_PORT', 'DB_NAME', 'DB_USERNAME', 'DB_PASSWORD']


def _build_database_uri():
    if os.getenv('DATABASE_URL'):
        return os.getenv('DATABASE_URL')
    if all(os.getenv(name) for name in REQUIRED_DB_VARS):
        return 'mysql+pymysql://{user}:{password}@{host}:{port}/{name}'.format(
            user=os.getenv('DB_USERNAME'),
            password=quote_plus(os.getenv('DB_PASSWORD')),
            host=os.getenv('DB_HOST'),
            port=os.getenv('DB_PORT'),
            name=os.getenv('DB_NAME'),
        )
    return 'sqlite:///central.db'


def parse_branch(value):
    """Branch ids are ints when numeric; blank means unset."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if value is None or not str(value).strip():
        return None
    value = str(value).strip()
    return int(value) if value.isdigit() else value


def _parse_columns(value):
    return [int(part) for part in value.split(',') if part.strip()]


class Config:
    # Environment
    FLASK_ENV = os.getenv('FLASK_ENV', 'development')
    ENV = os.getenv('ENV', 'PROD').upper()
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')

    # Central database
    DB_HOST = os.getenv('DB_HOST')
    DB_PORT = os.getenv('DB_PORT')
    DB_NAME = os.getenv('DB_NAME')
    DB_USERNAME = os.getenv('DB_USERNAME')
    DB_PASSWORD = os.getenv('DB_PASSWORD')
    DB_DIALECT = os.getenv('DB_DIALECT', 'mysql')
    SQLALCHEMY_DATABASE_URI = _build_database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {'pool_pre_ping': True}

    # Import scoping
    CENTRAL_BRANCH = parse_branch(os.getenv('CENTRAL_BRANCH'))
    CENTRAL_SYSTEM_USER_ID = os.getenv('CENTRAL_SYSTEM_USER_ID')
    CENTRAL_TIMEZONE = os.getenv('CENTRAL_TIMEZONE', 'UTC')
    DEFAULT_POSTIT_COLUMNS = _parse_columns(os.getenv('DEFAULT_POSTIT_COLUMNS', '1,13,14,15,16,17,18,19,20'))

    # Google OAuth / Sheets
    GOOGLE_CLIENT_ID = os.getenv('GOOGLE_CLIENT_ID')
    GOOGLE_CLIENT_SECRET = os.getenv('GOOGLE_CLIENT_SECRET')
    GOOGLE_REDIRECT_URI = os.getenv('GOOGLE_REDIRECT_URI', 'http://localhost:5005/auth/callback')
    SHEET_FETCH_RANGE = os.getenv('SHEET_FETCH_RANGE', 'A1:Z1000')


def missing_database_settings(config):
    """
    List the required database variables that are not set.

    A full DATABASE_URL makes the individual DB_* variables optional.

    Args:
        config: Flask config mapping (or anything with .get)

    Returns:
        List of missing variable names, empty when the database is configured
    """
    if os.getenv('DATABASE_URL') or config.get('DATABASE_URL'):
        return []
    return [name for name in REQUIRED_DB_VARS if not config.get(name)]


def require_import_settings(config):
    """
    Raise ConfigurationError unless everything an import needs is configured.

    Returns:
        Tuple of (branch, system_user_id)
    """
    from services.importer.exceptions import ConfigurationError

    missing = missing_database_settings(config)
    if config.get('CENTRAL_BRANCH') in (None, ''):
        missing.append('CENTRAL_BRANCH')
    if not config.get('CENTRAL_SYSTEM_USER_ID'):
        missing.append('CENTRAL_SYSTEM_USER_ID')

    if missing:
        raise ConfigurationError(
            f"Missing environment variables: {', '.join(missing)}",
            missing=missing
        )
    return config['CENTRAL_BRANCH'], config['CENTRAL_SYSTEM_USER_ID']
