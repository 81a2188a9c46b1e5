"""
Configuration management for the GradPortal application
"""
import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class"""

    # Flask Configuration
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    PERMANENT_SESSION_LIFETIME = 86400  # 24 hours

    # Database Configuration
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        f"mysql+pymysql://{os.environ.get('MYSQL_USER', 'root')}:{os.environ.get('MYSQL_PASSWORD', '')}@{os.environ.get('MYSQL_HOST', 'localhost')}/{os.environ.get('MYSQL_DB', 'gradportal')}"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }

    # Institution
    INSTITUTION_DOMAIN = os.environ.get('INSTITUTION_DOMAIN', 'uic.edu.ph')
    SUPER_ADMIN_EMAIL = os.environ.get('SUPER_ADMIN_EMAIL', 'superadmin@uic.edu.ph')
    SUPER_ADMIN_PASSWORD = os.environ.get('SUPER_ADMIN_PASSWORD')

    # Legacy Portal Configuration
    LEGACY_BASE_URL = os.environ.get('LEGACY_BASE_URL', 'https://my.uic.edu.ph')
    LEGACY_LOGIN_PATH = os.environ.get('LEGACY_LOGIN_PATH', '/index.cfm?fa=login.json_login_student')
    LEGACY_COORDINATOR_LOGIN_PATH = os.environ.get(
        'LEGACY_COORDINATOR_LOGIN_PATH', '/index.cfm?fa=login.json_login_employee'
    )
    LEGACY_CLEARANCE_PATH = os.environ.get(
        'LEGACY_CLEARANCE_PATH', '/index.cfm?fa=clearance.json_get_student_clearance_by_keyword'
    )
    LEGACY_TIMEOUT = int(os.environ.get('LEGACY_TIMEOUT', 20))
    LEGACY_USER_AGENT = os.environ.get(
        'LEGACY_USER_AGENT',
        'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126.0 Safari/537.36'
    )

    # Login throttling and cache lifetimes (seconds)
    LOGIN_MAX_ATTEMPTS = int(os.environ.get('LOGIN_MAX_ATTEMPTS', 5))
    LOGIN_DECAY_SECONDS = int(os.environ.get('LOGIN_DECAY_SECONDS', 60))
    LEGACY_SESSION_TTL = 30 * 60
    PENDING_ENRICHMENT_TTL = 10 * 60

    # Application Settings
    DEBUG = os.environ.get('FLASK_DEBUG', 'False').lower() in ['true', 'on', '1']
    TESTING = False

    @staticmethod
    def init_app(app):
        """Initialize application with configuration"""
        pass


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///gradportal.db'
    SQLALCHEMY_ENGINE_OPTIONS = {}


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    SECRET_KEY = os.environ.get('SECRET_KEY')

    @classmethod
    def init_app(cls, app):
        Config.init_app(app)

        # Ensure SECRET_KEY is set in production
        if not app.config['SECRET_KEY']:
            raise ValueError("SECRET_KEY environment variable must be set in production")


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    SECRET_KEY = 'testing-secret-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    SUPER_ADMIN_PASSWORD = 'super-secret'
    LEGACY_BASE_URL = 'https://legacy.test'


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
