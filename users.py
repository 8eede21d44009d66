import re
from flask import Blueprint, request, jsonify, url_for
from flask_jwt_extended import jwt_required
from marshmallow import Schema, fields, validate, ValidationError, EXCLUDE
from errors import NotFoundError, AlreadyExistsError, BadRequestError
from services import MAX_PASSWORD_BYTES
from helpers import get_services, load_request, parse_id, nocache, created, no_content, json_list
from patch import apply_patch
import logging

users_bp = Blueprint('users', __name__)
logger = logging.getLogger(__name__)

# ============================================
# Input Validation Schemas
# ============================================

LOWER = re.compile(r'[a-z]')
UPPER = re.compile(r'[A-Z]')
DIGIT = re.compile(r'[0-9]')
MAX_EMAIL_LENGTH = 255


def validate_password_strength(password):
    """
    密碼規則:
    1. 長度至少 7
    2. 大小寫字母都要有
    3. 至少一個數字
    4. bcrypt 只吃前 72 bytes,超過直接拒絕
    """
    if len(password.encode('utf-8')) > MAX_PASSWORD_BYTES:
        raise ValidationError(f'password too long. maximum length is {MAX_PASSWORD_BYTES} bytes')
    if len(password) <= 6:
        raise ValidationError('password too short. minimum length is 7')
    if not LOWER.search(password) or not UPPER.search(password):
        raise ValidationError('password must contain both letter cases')
    if not DIGIT.search(password):
        raise ValidationError('password should contain atleast 1 number')


class UserSchema(Schema):
    """回應用,密碼不輸出"""
    id = fields.UUID()
    login = fields.Str()
    email = fields.Str()
    created_at = fields.DateTime()
    image_id = fields.UUID(allow_none=True)


class CreateUserSchema(Schema):
    """建立使用者 / 註冊驗證"""
    class Meta:
        unknown = EXCLUDE

    login = fields.Str(
        required=True,
        validate=validate.Length(min=1, max=100),
        error_messages={'required': 'Login is required'}
    )
    email = fields.Email(
        required=True,
        validate=validate.Length(max=MAX_EMAIL_LENGTH),
        error_messages={
            'required': 'Email is required',
            'invalid': 'email value is incorrect'
        }
    )
    password = fields.Str(
        required=True,
        validate=validate_password_strength,
        error_messages={'required': 'Password is required'}
    )


class UpdateUserSchema(Schema):
    """更新使用者驗證,image_id 可以傳 null 清掉"""
    class Meta:
        unknown = EXCLUDE

    login = fields.Str(validate=validate.Length(min=1, max=100))
    email = fields.Email(
        validate=validate.Length(max=MAX_EMAIL_LENGTH),
        error_messages={'invalid': 'email value is incorrect'}
    )
    password = fields.Str(validate=validate_password_strength)
    image_id = fields.UUID(allow_none=True)


user_schema = UserSchema()

# ============================================
# 輔助函數 (供 auth 模組共用)
# ============================================


def ensure_email_available(email, user_id=None):
    """email 已被其他使用者使用時丟 AlreadyExistsError"""
    try:
        existing = get_services().users.find_user_by_email(email)
    except NotFoundError:
        return

    if existing.id != user_id:
        raise AlreadyExistsError(f"user with email {email} already exists")


def create_user_from_request(schema_class=CreateUserSchema):
    """驗證 body、檢查 email、建立使用者,回傳新 id"""
    data = load_request(schema_class)
    ensure_email_available(data['email'])

    user_id = get_services().users.create_user(data['login'], data['email'], data['password'])
    logger.info(f"New user created: {data['email']}")
    return user_id

# ============================================
# 建立使用者
# ============================================


@users_bp.route('', methods=['POST'])
def create_user():
    """建立使用者,回傳 201 + Location"""
    user_id = create_user_from_request()
    return created(url_for('users.get_user', user_id=str(user_id)))

# ============================================
# 查詢使用者列表
# ============================================


@users_bp.route('', methods=['GET'])
@jwt_required()
@nocache
def list_users():
    """
    查詢使用者列表

    支援 ?email= (最多一個) 和 ?login= 篩選,查不到回傳 []
    """
    users = get_services().users

    emails = request.args.getlist('email')
    if emails:
        if len(emails) != 1:
            raise BadRequestError.with_detail('multiple emails query not implemented')
        try:
            return json_list(user_schema, [users.find_user_by_email(emails[0])])
        except NotFoundError:
            return jsonify([])

    login = request.args.get('login')
    if login:
        try:
            return json_list(user_schema, users.find_users_by('login', login))
        except NotFoundError:
            return jsonify([])

    return json_list(user_schema, users.get_users_list())

# ============================================
# 查詢單一使用者
# ============================================


@users_bp.route('/<user_id>', methods=['GET'])
@jwt_required()
@nocache
def get_user(user_id):
    user = get_services().users.get_user(parse_id(user_id))
    return jsonify(user_schema.dump(user))

# ============================================
# 更新使用者
# ============================================


@users_bp.route('/<user_id>', methods=['PATCH'])
@jwt_required()
@nocache
def update_user(user_id):
    """
    部分更新使用者

    沒帶的欄位維持原值;image_id 傳 null 會清空;
    新密碼會重新雜湊;email 不能和別人重複
    """
    users = get_services().users
    user = users.get_user(parse_id(user_id))

    changes = load_request(UpdateUserSchema)
    if 'email' in changes:
        ensure_email_available(changes['email'], user.id)
    if 'password' in changes:
        changes['password'] = users.hash_password(changes['password'])

    diff = apply_patch(user, changes)
    if diff:
        users.update_user(user)
        logger.info(f"User {user.id} updated fields: {', '.join(sorted(diff))}")

    return jsonify(user_schema.dump(user))

# ============================================
# 刪除使用者
# ============================================


@users_bp.route('/<user_id>', methods=['DELETE'])
@jwt_required()
def delete_user(user_id):
    user_id = parse_id(user_id)
    get_services().users.delete_user(user_id)

    logger.info(f"User deleted: {user_id}")
    return no_content()
