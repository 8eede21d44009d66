from flask import Blueprint, jsonify, url_for
from flask_jwt_extended import jwt_required
from marshmallow import Schema, fields, validate, EXCLUDE
from entities import Team, UserTeamRelation
from errors import NotFoundError, AlreadyExistsError
from helpers import get_services, load_request, parse_id, nocache, created, no_content, json_list
from patch import apply_patch
import logging

teams_bp = Blueprint('teams', __name__)
logger = logging.getLogger(__name__)

# ============================================
# Input Validation Schemas
# ============================================


class TeamSchema(Schema):
    id = fields.UUID()
    name = fields.Str()


class RelationSchema(Schema):
    user_id = fields.UUID(data_key='id_user')
    team_id = fields.UUID(data_key='id_team')


class CreateTeamSchema(Schema):
    """建立團隊驗證 (只有 name 一個欄位)"""
    class Meta:
        unknown = EXCLUDE

    name = fields.Str(
        required=True,
        validate=validate.Length(min=1, max=255),
        error_messages={'required': 'Team name is required'}
    )


class UpdateTeamSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    name = fields.Str(validate=validate.Length(min=1, max=255))


team_schema = TeamSchema()
relation_schema = RelationSchema()

# ============================================
# 團隊 CRUD
# ============================================


@teams_bp.route('', methods=['POST'])
@jwt_required()
def create_team():
    data = load_request(CreateTeamSchema)
    team_id = get_services().teams.create_team(Team(name=data['name']))

    logger.info(f"Team created: {data['name']}")
    return created(url_for('teams.get_team', team_id=str(team_id)))


@teams_bp.route('', methods=['GET'])
@jwt_required()
@nocache
def list_teams():
    return json_list(team_schema, get_services().teams.select_teams_list())


@teams_bp.route('/<team_id>', methods=['GET'])
@jwt_required()
@nocache
def get_team(team_id):
    team = get_services().teams.select_team_by_id(parse_id(team_id))
    return jsonify(team_schema.dump(team))


@teams_bp.route('/<team_id>', methods=['PATCH'])
@jwt_required()
@nocache
def update_team(team_id):
    teams = get_services().teams
    team = teams.select_team_by_id(parse_id(team_id))

    diff = apply_patch(team, load_request(UpdateTeamSchema))
    if diff:
        teams.update_team(team)
        logger.info(f"Team {team.id} renamed to {team.name}")

    return jsonify(team_schema.dump(team))


@teams_bp.route('/<team_id>', methods=['DELETE'])
@jwt_required()
def delete_team(team_id):
    """
    刪除團隊

    先清掉成員關聯再刪團隊。兩步不在同一個 transaction 裡,
    團隊刪除失敗時關聯已經不見了
    """
    team_id = parse_id(team_id)
    services = get_services()

    try:
        services.relations.select_relations_by_team_id(team_id)
    except NotFoundError:
        pass
    else:
        services.relations.delete_relations_by_team_id(team_id)

    services.teams.delete_team(team_id)

    logger.info(f"Team deleted: {team_id}")
    return no_content()

# ============================================
# 團隊成員 (users_team_xref)
# ============================================


@teams_bp.route('/<team_id>/users', methods=['GET'])
@jwt_required()
@nocache
def list_team_users(team_id):
    """列出團隊的成員關聯,沒有成員回傳 []"""
    try:
        relations = get_services().relations.select_relations_by_team_id(parse_id(team_id))
    except NotFoundError:
        return jsonify([])
    return json_list(relation_schema, relations)


@teams_bp.route('/<team_id>/users/<user_id>', methods=['PUT'])
@jwt_required()
def add_team_user(team_id, user_id):
    """
    把使用者加入團隊

    團隊或使用者不存在回 404,已經是成員回 409
    """
    team_id = parse_id(team_id)
    user_id = parse_id(user_id)
    services = get_services()

    services.teams.select_team_by_id(team_id)
    services.users.get_user(user_id)

    try:
        services.relations.select_relation_by_ids(team_id, user_id)
    except NotFoundError:
        pass
    else:
        raise AlreadyExistsError.with_detail(f"user[{user_id}] is already in team[{team_id}]")

    services.relations.create_relation(UserTeamRelation(user_id=user_id, team_id=team_id))

    logger.info(f"User {user_id} added to team {team_id}")
    return created(url_for('teams.list_team_users', team_id=str(team_id)))


@teams_bp.route('/<team_id>/users/<user_id>', methods=['DELETE'])
@jwt_required()
def remove_team_user(team_id, user_id):
    team_id = parse_id(team_id)
    user_id = parse_id(user_id)
    get_services().relations.delete_relation_by_ids(team_id, user_id)

    logger.info(f"User {user_id} removed from team {team_id}")
    return no_content()
