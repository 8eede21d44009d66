import uuid
from functools import wraps
from flask import current_app, jsonify, make_response, request
from marshmallow import ValidationError
from entities import is_id_valid
from errors import BadRequestError

# ============================================
# Handler 共用的小工具
# ============================================

NO_CACHE_HEADERS = {
    'Cache-Control': 'no-store, no-cache, must-revalidate',
    'Pragma': 'no-cache',
}


def get_services():
    """從 app extensions 取得 service 組合 (不用 global variable)"""
    return current_app.extensions['services']


def load_request(schema_class):
    """
    統一的輸入驗證

    body 不是 JSON object 或驗證失敗都丟 BadRequestError

    Returns:
        dict: 只包含 request 實際帶上的欄位
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise BadRequestError()

    try:
        return schema_class().load(data)
    except ValidationError as err:
        raise BadRequestError.with_detail(err.messages) from err


def parse_id(value):
    """把 URL 或 query 裡的字串轉成 UUID,格式錯誤或全零 UUID 回 400"""
    try:
        parsed = uuid.UUID(value)
    except (TypeError, ValueError) as e:
        raise BadRequestError.with_detail(f"invalid UUID {value!r}") from e

    if not is_id_valid(parsed):
        raise BadRequestError.with_detail(f"invalid UUID {value!r}")
    return parsed


def nocache(view):
    """讀取類 endpoint 加上禁止快取的 header"""
    @wraps(view)
    def wrapper(*args, **kwargs):
        response = make_response(view(*args, **kwargs))
        response.headers.update(NO_CACHE_HEADERS)
        return response
    return wrapper


def text_response(message, status):
    """錯誤回應一律是純文字"""
    response = make_response(str(message), status)
    response.headers['Content-Type'] = 'text/plain; charset=utf-8'
    return response


def created(location):
    """201 Created + Location,沒有 body"""
    response = make_response('', 201)
    response.headers['Location'] = location
    return response


def no_content():
    return make_response('', 204)


def json_list(schema, items):
    """list 一律回傳 JSON array,查不到就是 []"""
    return jsonify(schema.dump(items or [], many=True))
