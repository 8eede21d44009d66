from flask import Blueprint, request, jsonify, url_for
from flask_jwt_extended import jwt_required
from marshmallow import Schema, fields, validate, EXCLUDE
from entities import Task
from errors import NotFoundError, BadRequestError
from helpers import get_services, load_request, parse_id, nocache, created, no_content, json_list
from patch import apply_patch
import logging

tasks_bp = Blueprint('tasks', __name__)
logger = logging.getLogger(__name__)

# priority 欄位是 32-bit integer
MAX_PRIORITY = 2**31 - 1

# ============================================
# Input Validation Schemas
# ============================================


class TaskSchema(Schema):
    """回應用,JSON 名稱沿用 id_user / id_team"""
    id = fields.UUID()
    title = fields.Str()
    priority = fields.Int(allow_none=True)
    user_id = fields.UUID(data_key='id_user')
    team_id = fields.UUID(data_key='id_team', allow_none=True)


class CreateTaskSchema(Schema):
    """建立任務驗證"""
    class Meta:
        unknown = EXCLUDE

    title = fields.Str(
        required=True,
        validate=validate.Length(min=1, max=255),
        error_messages={'required': 'Task title is required'}
    )
    priority = fields.Int(validate=validate.Range(min=0, max=MAX_PRIORITY), allow_none=True)
    user_id = fields.UUID(
        data_key='id_user',
        required=True,
        error_messages={'required': 'id_user is required'}
    )
    team_id = fields.UUID(data_key='id_team', allow_none=True)


class UpdateTaskSchema(Schema):
    """更新任務驗證,擁有者 (id_user) 不能改"""
    class Meta:
        unknown = EXCLUDE

    title = fields.Str(validate=validate.Length(min=1, max=255))
    priority = fields.Int(validate=validate.Range(min=0, max=MAX_PRIORITY), allow_none=True)
    team_id = fields.UUID(data_key='id_team', allow_none=True)


task_schema = TaskSchema()

# ============================================
# 輔助函數
# ============================================


def ensure_user_exists(user_id):
    """參照的使用者不存在時回 400 (不是 404,錯的是 request body)"""
    try:
        get_services().users.get_user(user_id)
    except NotFoundError as e:
        raise BadRequestError(f"user[{user_id}] doesn't exist: {e}") from e


def ensure_team_exists(team_id):
    try:
        get_services().teams.select_team_by_id(team_id)
    except NotFoundError as e:
        raise BadRequestError(f"team[{team_id}] doesn't exist: {e}") from e


def parse_filters(args):
    """
    把 query string 轉成 repository 的篩選條件

    1. 同一個 key 出現多次回 400
    2. key 名稱有 'id' 的 (id_user, id_team) 要是合法 UUID
    3. priority 轉成整數
    """
    filters = {}
    for key in args:
        values = args.getlist(key)
        if len(values) != 1:
            raise BadRequestError.with_detail(f"multiple values for query parameter {key}")

        value = values[0]
        if 'id' in key:
            value = parse_id(value)
        elif key == 'priority':
            try:
                value = int(value)
            except ValueError as e:
                raise BadRequestError.with_detail(f"invalid priority {value!r}") from e
            if not 0 <= value <= MAX_PRIORITY:
                raise BadRequestError.with_detail(f"invalid priority {value!r}")
        filters[key] = value
    return filters

# ============================================
# 建立任務
# ============================================


@tasks_bp.route('', methods=['POST'])
@jwt_required()
def create_task():
    """
    建立任務

    id_user 必須是存在的使用者;有帶 id_team 的話團隊也要存在
    """
    data = load_request(CreateTaskSchema)

    ensure_user_exists(data['user_id'])
    if data.get('team_id') is not None:
        ensure_team_exists(data['team_id'])

    task_id = get_services().tasks.create_task(Task(**data))

    logger.info(f"Task created: {data['title']} for user {data['user_id']}")
    return created(url_for('tasks.get_task', task_id=str(task_id)))

# ============================================
# 查詢任務列表
# ============================================


@tasks_bp.route('', methods=['GET'])
@jwt_required()
@nocache
def list_tasks():
    """
    查詢任務列表

    例如 ?id_user=<uuid>&id_team=<uuid>,條件之間是 AND,
    查不到回傳 [] 而不是 404
    """
    filters = parse_filters(request.args)
    tasks = get_services().tasks

    if not filters:
        return json_list(task_schema, tasks.get_tasks_list())

    try:
        return json_list(task_schema, tasks.get_tasks_by(filters))
    except NotFoundError:
        return jsonify([])

# ============================================
# 查詢單一任務
# ============================================


@tasks_bp.route('/<task_id>', methods=['GET'])
@jwt_required()
@nocache
def get_task(task_id):
    task = get_services().tasks.get_task_by_id(parse_id(task_id))
    return jsonify(task_schema.dump(task))

# ============================================
# 更新任務
# ============================================


@tasks_bp.route('/<task_id>', methods=['PATCH'])
@jwt_required()
@nocache
def update_task(task_id):
    """
    部分更新任務 (title / priority / id_team)

    id_team 設成非 null 時要檢查團隊存在;設成 null 代表移出團隊
    """
    tasks = get_services().tasks
    task = tasks.get_task_by_id(parse_id(task_id))

    changes = load_request(UpdateTaskSchema)
    if changes.get('team_id') is not None:
        ensure_team_exists(changes['team_id'])

    diff = apply_patch(task, changes)
    if diff:
        tasks.update_task(task)
        logger.info(f"Task {task.id} updated fields: {', '.join(sorted(diff))}")

    return jsonify(task_schema.dump(task))

# ============================================
# 刪除任務
# ============================================


@tasks_bp.route('/<task_id>', methods=['DELETE'])
@jwt_required()
def delete_task(task_id):
    """刪除任務,底下的 todo 由資料庫 cascade 一起刪掉"""
    task_id = parse_id(task_id)
    get_services().tasks.delete_task_by_id(task_id)

    logger.info(f"Task deleted: {task_id}")
    return no_content()
