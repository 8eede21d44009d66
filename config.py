import os
from datetime import timedelta
from dotenv import load_dotenv

# 載入 .env 檔案
load_dotenv()

DEV_SECRET = 'dev-secret-key-change-in-production'


def build_database_uri():
    """
    組合資料庫連線字串

    優先使用 DATABASE_URL,沒有的話用 DB_* 組出 PostgreSQL URL,
    兩者都沒有就退回開發用的 SQLite
    """
    url = os.getenv('DATABASE_URL')
    if url:
        return url

    if os.getenv('DB_HOST'):
        return 'postgresql+psycopg2://{user}:{password}@{host}:{port}/{name}'.format(
            user=os.getenv('DB_USER', 'postgres'),
            password=os.getenv('DB_PASSWORD', ''),
            host=os.getenv('DB_HOST'),
            port=int(os.getenv('DB_PORT', 5432)),
            name=os.getenv('DB_NAME', 'postgres'),
        )

    return 'sqlite:///todo_back.db'


class Config:
    """
    應用程式設定

    所有設定在啟動時讀一次,之後透過 app.config 傳給
    JWT、資料庫等元件,request 期間不再讀環境變數
    """

    # ============================================
    # 基本設定
    # ============================================

    # ⚠️ 在 production 環境必須設定強隨機值
    SECRET_KEY = os.getenv('SECRET', DEV_SECRET)

    ENV = os.getenv('FLASK_ENV', 'development')
    DEBUG = os.getenv('FLASK_DEBUG', 'False').lower() == 'true'

    APP_HOST = os.getenv('APP_HOST', '0.0.0.0')
    APP_PORT = int(os.getenv('APP_PORT', 5000))

    API_PREFIX = os.getenv('API_PREFIX', '/api/v1')

    # ============================================
    # 資料庫設定
    # ============================================

    SQLALCHEMY_DATABASE_URI = build_database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Connection Pool (由 SQLAlchemy 管理)
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': int(os.getenv('DB_POOL_SIZE', 10)),
        'pool_recycle': int(os.getenv('DB_POOL_RECYCLE', 3600)),
        'pool_pre_ping': True,
        'max_overflow': int(os.getenv('DB_MAX_OVERFLOW', 20))
    }

    # ============================================
    # JWT 設定 (cookie 版)
    # ============================================

    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', SECRET_KEY)
    JWT_ALGORITHM = 'HS256'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(
        hours=int(os.getenv('JWT_ACCESS_TOKEN_EXPIRES_HOURS', 24))
    )

    # token 只從 cookie 讀
    JWT_TOKEN_LOCATION = ['cookies']
    JWT_ACCESS_COOKIE_NAME = 'session_id'
    JWT_ACCESS_COOKIE_PATH = API_PREFIX
    JWT_COOKIE_SECURE = True
    JWT_COOKIE_SAMESITE = 'Lax'
    JWT_COOKIE_CSRF_PROTECT = False
    # cookie 和 token 同時過期
    JWT_SESSION_COOKIE = False

    # ============================================
    # CORS 設定
    # ============================================

    CORS_ORIGINS = os.getenv('CORS_ORIGINS', 'http://localhost:3000').split(',')

    # ============================================
    # Rate Limiting 設定
    # ============================================

    REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = REDIS_URL if ENV == 'production' else 'memory://'
    RATELIMIT_HEADERS_ENABLED = True

    # ============================================
    # 密碼雜湊
    # ============================================

    BCRYPT_LOG_ROUNDS = int(os.getenv('BCRYPT_LOG_ROUNDS', 12))

    # ============================================
    # Logging 設定
    # ============================================

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FILE = os.getenv('LOG_FILE', 'logs/app.log')
    ERROR_LOG_FILE = os.getenv('ERROR_LOG_FILE', 'logs/error.log')

    @classmethod
    def validate(cls):
        """
        驗證設定是否正確

        在啟動時檢查必要的設定是否都有設定
        """
        if cls.ENV != 'production':
            return

        missing = []
        if not os.getenv('SECRET'):
            missing.append('SECRET')
        if not (os.getenv('DATABASE_URL') or os.getenv('DB_HOST')):
            missing.append('DATABASE_URL or DB_HOST')

        if missing:
            raise ValueError(
                f"Missing required environment variables in production: {', '.join(missing)}"
            )

        if cls.SECRET_KEY == DEV_SECRET:
            raise ValueError("You must set a strong SECRET in production!")


class DevelopmentConfig(Config):
    """開發環境設定"""
    DEBUG = True
    SQLALCHEMY_ECHO = True
    JWT_COOKIE_SECURE = False


class ProductionConfig(Config):
    """生產環境設定"""
    DEBUG = False
    TESTING = False


class TestingConfig(Config):
    """測試環境設定"""
    TESTING = True
    DEBUG = False
    SECRET_KEY = 'testing-secret-key-for-hs256-signing'
    JWT_SECRET_KEY = 'testing-secret-key-for-hs256-signing'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    # in-memory SQLite 用 StaticPool,不能帶 pool_size
    SQLALCHEMY_ENGINE_OPTIONS = {}
    # test client 走 http
    JWT_COOKIE_SECURE = False
    RATELIMIT_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4


# 根據環境變數選擇設定
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config():
    """取得當前環境的設定"""
    env = os.getenv('FLASK_ENV', 'development')
    return config.get(env, config['default'])
