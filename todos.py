from flask import Blueprint, request, jsonify, url_for
from flask_jwt_extended import jwt_required
from marshmallow import Schema, fields, validate, EXCLUDE
from entities import Todo
from errors import NotFoundError, BadRequestError
from helpers import get_services, load_request, parse_id, nocache, created, no_content, json_list
from patch import apply_patch
import logging

todos_bp = Blueprint('todos', __name__)
logger = logging.getLogger(__name__)

# ============================================
# Input Validation Schemas
# ============================================


class TodoSchema(Schema):
    id = fields.UUID()
    title = fields.Str(allow_none=True)
    text = fields.Str()
    complete = fields.Bool()
    task_id = fields.UUID(data_key='id_task')


class CreateTodoSchema(Schema):
    """建立待辦事項驗證"""
    class Meta:
        unknown = EXCLUDE

    title = fields.Str(validate=validate.Length(max=255), allow_none=True)
    text = fields.Str(required=True, error_messages={'required': 'Todo text is required'})
    complete = fields.Bool(load_default=False)
    task_id = fields.UUID(
        data_key='id_task',
        required=True,
        error_messages={'required': 'id_task is required'}
    )


class UpdateTodoSchema(Schema):
    """更新待辦事項驗證,可以把 todo 移到別的 task"""
    class Meta:
        unknown = EXCLUDE

    title = fields.Str(validate=validate.Length(max=255), allow_none=True)
    text = fields.Str()
    complete = fields.Bool()
    task_id = fields.UUID(data_key='id_task')


todo_schema = TodoSchema()


def ensure_task_exists(task_id):
    try:
        get_services().tasks.get_task_by_id(task_id)
    except NotFoundError as e:
        raise BadRequestError(f"task[{task_id}] doesn't exist: {e}") from e

# ============================================
# 建立待辦事項
# ============================================


@todos_bp.route('', methods=['POST'])
@jwt_required()
def create_todo():
    data = load_request(CreateTodoSchema)
    ensure_task_exists(data['task_id'])

    todo_id = get_services().todos.create_todo(Todo(**data))

    logger.info(f"Todo created in task {data['task_id']}")
    return created(url_for('todos.get_todo', todo_id=str(todo_id)))

# ============================================
# 查詢待辦事項列表
# ============================================


@todos_bp.route('', methods=['GET'])
@jwt_required()
@nocache
def list_todos():
    """支援 ?id_task= 篩選,查不到回傳 []"""
    todos = get_services().todos

    task_ids = request.args.getlist('id_task')
    if not task_ids:
        return json_list(todo_schema, todos.get_todos_list())
    if len(task_ids) != 1:
        raise BadRequestError.with_detail('multiple values for query parameter id_task')

    try:
        return json_list(todo_schema, todos.get_todos_by_task_id(parse_id(task_ids[0])))
    except NotFoundError:
        return jsonify([])

# ============================================
# 查詢單一待辦事項
# ============================================


@todos_bp.route('/<todo_id>', methods=['GET'])
@jwt_required()
@nocache
def get_todo(todo_id):
    todo = get_services().todos.get_todo_by_id(parse_id(todo_id))
    return jsonify(todo_schema.dump(todo))

# ============================================
# 更新待辦事項
# ============================================


@todos_bp.route('/<todo_id>', methods=['PATCH'])
@jwt_required()
@nocache
def update_todo(todo_id):
    """
    部分更新待辦事項

    合併完之後再檢查一次 id_task 指向的 task 還在
    """
    todos = get_services().todos
    todo = todos.get_todo_by_id(parse_id(todo_id))

    diff = apply_patch(todo, load_request(UpdateTodoSchema))
    ensure_task_exists(todo.task_id)

    if diff:
        todos.update_todo(todo)
        logger.info(f"Todo {todo.id} updated fields: {', '.join(sorted(diff))}")

    return jsonify(todo_schema.dump(todo))

# ============================================
# 刪除待辦事項
# ============================================


@todos_bp.route('/<todo_id>', methods=['DELETE'])
@jwt_required()
def delete_todo(todo_id):
    todo_id = parse_id(todo_id)
    get_services().todos.delete_todo(todo_id)

    logger.info(f"Todo deleted: {todo_id}")
    return no_content()
