import uuid
from flask import Blueprint, jsonify, request, current_app, url_for
from flask_jwt_extended import (
    create_access_token, jwt_required, get_jwt_identity,
    set_access_cookies, unset_access_cookies
)
from marshmallow import Schema, fields, EXCLUDE
from errors import NotFoundError, UnauthorizedError
from extensions import limiter
from helpers import get_services, load_request, nocache, created, text_response
from users import CreateUserSchema, create_user_from_request, user_schema
import logging

auth_bp = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)


# ============================================
# Input Validation Schemas (用 marshmallow)
# ============================================

class RegisterSchema(CreateUserSchema):
    """註冊輸入驗證 (和 POST /users 規則相同)"""


class LoginSchema(Schema):
    """登入輸入驗證"""
    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True, error_messages={
        'required': 'Email is required',
        'invalid': 'email value is incorrect'
    })
    password = fields.Str(required=True, error_messages={'required': 'Password is required'})

# ============================================
# 輔助函數 (供其他模組使用)
# ============================================


def get_current_user_id():
    """token 裡的 identity 是字串,轉回 UUID"""
    return uuid.UUID(get_jwt_identity())

# ============================================
# 註冊 API
# ============================================


@auth_bp.route('/register', methods=['POST'])
@limiter.limit("5 per hour")
def register():
    """
    使用者註冊

    1. email 格式、密碼強度由 schema 檢查 (400)
    2. email 已存在回 409
    3. 成功回 201,Location 指向登入頁
    """
    create_user_from_request(RegisterSchema)
    return created(url_for('auth.login'))

# ============================================
# 登入 API
# ============================================


@auth_bp.route('/login', methods=['POST'])
@limiter.limit("10 per minute")
def login():
    """
    使用者登入

    token 放在 HttpOnly cookie (session_id),不放在 response body。
    不區分是 email 錯還是 password 錯,避免帳號枚舉攻擊
    """
    data = load_request(LoginSchema)
    users = get_services().users

    try:
        user = users.find_user_by_email(data['email'])
    except NotFoundError:
        user = None

    if user is None or not users.verify_password(user, data['password']):
        logger.warning(f"Failed login attempt for email: {data['email']} from {request.remote_addr}")
        raise UnauthorizedError()

    access_token = create_access_token(identity=str(user.id))

    response = jsonify(user_schema.dump(user))
    set_access_cookies(response, access_token)

    logger.info(f"User logged in: {user.email}")
    return response

# ============================================
# 登出 API
# ============================================


@auth_bp.route('/logout', methods=['GET'])
def logout():
    """
    登出

    沒有 session store,只是把 cookie 蓋成空值並設為過期。
    沒帶 cookie 就回 401
    """
    cookie_name = current_app.config['JWT_ACCESS_COOKIE_NAME']
    if not request.cookies.get(cookie_name):
        return text_response('missing session cookie', 401)

    response = jsonify({'message': 'Logout successful'})
    unset_access_cookies(response)
    return response

# ============================================
# 取得當前使用者資訊
# ============================================


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
@nocache
def get_me():
    """token 有效但使用者已被刪除時回 404"""
    user_id = get_current_user_id()
    try:
        user = get_services().users.get_user(user_id)
    except NotFoundError:
        logger.warning(f"Token valid but user not found: {user_id}")
        raise

    return jsonify(user_schema.dump(user))
