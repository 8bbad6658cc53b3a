import os
from dotenv import load_dotenv

load_dotenv()


def _default_db_uri() -> str:
    user = os.environ.get('MYSQL_USER', 'root')
    password = os.environ.get('MYSQL_PASSWORD', 'root')
    host = os.environ.get('MYSQL_HOST', '127.0.0.1')
    port = os.environ.get('MYSQL_PORT', '3306')
    db = os.environ.get('MYSQL_DB', 'hallmark')
    return f"mysql+pymysql://{user}:{password}@{host}:{port}/{db}"


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'change-me'
    # Use DATABASE_URL if present; else build a MySQL URI for PyMySQL
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or _default_db_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Mail settings used by the notification/email services
    MAIL_SERVER = os.environ.get('MAIL_SERVER', 'smtp.gmail.com')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', 587))
    MAIL_USE_TLS = os.environ.get('MAIL_USE_TLS', 'true').lower() == 'true'
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER', MAIL_USERNAME)
    SEND_EMAILS = os.environ.get('SEND_EMAILS', 'false').lower() == 'true'

    # Accounts created by staff get this password until the owner changes it
    DEFAULT_PASSWORD = os.environ.get('DEFAULT_PASSWORD', 'password')
    ADMISSION_PREFIX = os.environ.get('ADMISSION_PREFIX', 'HALL')

    LOGIN_MAX_ATTEMPTS = int(os.environ.get('LOGIN_MAX_ATTEMPTS', 3))
    LOGIN_LOCK_MINUTES = int(os.environ.get('LOGIN_LOCK_MINUTES', 15))

    UPLOAD_FOLDER = os.environ.get(
        'UPLOAD_FOLDER',
        os.path.join(os.path.dirname(os.path.abspath(__file__)), 'uploads'),
    )
    MAX_LOGO_BYTES = 5 * 1024 * 1024
    MAX_CONTENT_LENGTH = 6 * 1024 * 1024
