from flask import Flask, request, jsonify
from jwt.exceptions import InvalidTokenError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException
from datetime import datetime, timezone
import logging
from logging.handlers import RotatingFileHandler
import os

from config import get_config
from errors import AppError
from extensions import cors, jwt, bcrypt, limiter
from helpers import text_response
from models import db
from repositories import make_sql_repositories
from services import build_services

logger = logging.getLogger(__name__)

# ============================================
# Logging 設定
# ============================================


def setup_logging(app):
    """
    設定 logging 系統

    1. 分開 info 和 error logs
    2. 使用 RotatingFileHandler 避免 log 檔案過大
    3. handler 掛在 root logger,各模組的 logging.getLogger(__name__) 都會寫進來
    """
    log_dir = os.path.dirname(app.config['LOG_FILE'])
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir)

    formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
    )

    # Info log handler (記錄一般資訊)
    info_handler = RotatingFileHandler(
        app.config['LOG_FILE'],
        maxBytes=10240000,  # 10MB
        backupCount=10
    )
    info_handler.setLevel(logging.INFO)
    info_handler.setFormatter(formatter)

    # Error log handler (只記錄錯誤)
    error_handler = RotatingFileHandler(
        app.config['ERROR_LOG_FILE'],
        maxBytes=10240000,  # 10MB
        backupCount=10
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(formatter)

    root = logging.getLogger()
    root.addHandler(info_handler)
    root.addHandler(error_handler)
    root.setLevel(app.config['LOG_LEVEL'])

    app.logger.info('Application startup')

# ============================================
# JWT 錯誤處理
# 回應一律是純文字 401,handler 本身不會被執行
# ============================================


@jwt.expired_token_loader
def expired_token_callback(jwt_header, jwt_payload):
    """處理 token 過期"""
    logger.warning(f"Expired token attempt from: {request.remote_addr}")
    return text_response('token has expired', 401)


@jwt.invalid_token_loader
def invalid_token_callback(error):
    """處理無效的 token (簽章錯誤、格式錯誤)"""
    logger.warning(f"Invalid token attempt from: {request.remote_addr}, error: {error}")
    return text_response('invalid token', 401)


@jwt.unauthorized_loader
def unauthorized_callback(error):
    """處理缺少 token"""
    logger.warning(f"Unauthorized access attempt from: {request.remote_addr}, error: {error}")
    return text_response('missing session cookie', 401)

# ============================================
# 全域錯誤處理
# ============================================


def register_error_handlers(app):

    @app.errorhandler(AppError)
    def handle_app_error(error):
        """repository / service / handler 丟出的錯誤,訊息直接給前端"""
        if error.status_code >= 500:
            logger.error(f"Application error: {error}", exc_info=True)
        return text_response(error, error.status_code)

    @app.errorhandler(InvalidTokenError)
    def handle_invalid_token(error):
        """
        PyJWT 的其他 token 錯誤 (例如 alg 不是 HS256 或是 none)

        flask_jwt_extended 沒有全部接住,這裡統一當成無效 token
        """
        logger.warning(f"Rejected token from: {request.remote_addr}, error: {error}")
        return text_response('invalid token', 401)

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        """404 / 405 / 429 等 HTTP 錯誤,也回純文字"""
        if error.code == 429:
            logger.warning(f"Rate limit exceeded from: {request.remote_addr}")
        return text_response(error.description, error.code)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        """
        處理所有未預期的錯誤

        這是最後的防線:rollback、記錄完整 stack trace,前端只拿到通用訊息
        """
        db.session.rollback()
        logger.error(f"Unexpected error: {str(error)}", exc_info=True)
        return text_response(AppError.message, 500)

# ============================================
# Request/Response Logging
# ============================================


def register_request_hooks(app):

    @app.before_request
    def log_request():
        """記錄每個請求"""
        if not app.debug:
            logger.info(f"Request: {request.method} {request.path} from {request.remote_addr}")

    @app.after_request
    def log_response(response):
        """記錄每個回應,並加上 security headers"""
        if not app.debug:
            logger.info(f"Response: {response.status_code} for {request.method} {request.path}")

        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['X-XSS-Protection'] = '1; mode=block'
        return response

# ============================================
# 初始化 Flask App
# ============================================


def create_app(config_class=None, repositories=None):
    """
    App factory

    Args:
        config_class: 設定類別,預設依 FLASK_ENV 選擇
        repositories: repository 組合,預設用 SQLAlchemy 版;
                      測試可以傳入 memory.make_memory_repositories()
    """
    config_class = config_class or get_config()
    config_class.validate()

    app = Flask(__name__)
    app.config.from_object(config_class)

    if not app.debug and not app.testing:
        setup_logging(app)

    # ============================================
    # 擴展初始化
    # ============================================

    cors.init_app(
        app,
        supports_credentials=True,
        origins=app.config['CORS_ORIGINS'],
        methods=['GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS'],
        allow_headers=['Content-Type']
    )
    db.init_app(app)
    jwt.init_app(app)
    bcrypt.init_app(app)
    limiter.init_app(app)

    app.extensions['bcrypt'] = bcrypt

    # ============================================
    # 資料庫與 service 組裝
    # ============================================

    sql_backed = repositories is None
    if sql_backed:
        with app.app_context():
            db.create_all()
            logger.info('Database tables created')
        repositories = make_sql_repositories(db)

    app.extensions['services'] = build_services(repositories, bcrypt)

    # ============================================
    # 註冊 Blueprints
    # ============================================

    from auth import auth_bp
    from users import users_bp
    from tasks import tasks_bp
    from todos import todos_bp
    from teams import teams_bp

    prefix = app.config['API_PREFIX']
    app.register_blueprint(auth_bp, url_prefix=f'{prefix}/auth')
    app.register_blueprint(users_bp, url_prefix=f'{prefix}/users')
    app.register_blueprint(tasks_bp, url_prefix=f'{prefix}/tasks')
    app.register_blueprint(todos_bp, url_prefix=f'{prefix}/todos')
    app.register_blueprint(teams_bp, url_prefix=f'{prefix}/teams')

    register_error_handlers(app)
    register_request_hooks(app)

    # ============================================
    # Health Check Endpoint
    # ============================================

    @app.route('/health', methods=['GET'])
    @limiter.exempt
    def health_check():
        """
        健康檢查端點

        用於 load balancer 或監控系統檢查服務是否正常
        """
        if sql_backed:
            try:
                db.session.execute(text('SELECT 1'))
            except SQLAlchemyError as e:
                logger.error(f"Health check failed: {str(e)}")
                return jsonify({
                    'status': 'unhealthy',
                    'database': 'disconnected',
                    'error': 'Database connection failed'
                }), 503

        return jsonify({
            'status': 'healthy',
            'database': 'connected' if sql_backed else 'in-memory',
            'timestamp': datetime.now(timezone.utc).isoformat()
        }), 200

    return app

# ============================================
# 啟動應用
# ============================================


if __name__ == '__main__':
    # 在 production 環境不要用 Flask 內建的 server
    # 應該用 gunicorn,例如 gunicorn "app:create_app()"
    app = create_app()

    app.run(
        debug=app.config['DEBUG'],
        host=app.config['APP_HOST'],
        port=app.config['APP_PORT']
    )
