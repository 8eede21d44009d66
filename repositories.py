from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timezone
from sqlalchemy.exc import IntegrityError
from models import UserModel, TaskModel, TodoModel, TeamModel, UserTeamModel
from entities import User, Task, Todo, Team, UserTeamRelation
from errors import NotFoundError, AlreadyExistsError, BadRequestError
import logging

logger = logging.getLogger(__name__)

# ============================================
# Repository 介面
# 每個 entity 一個,實作有 SQLAlchemy 版 (本檔) 和記憶體版 (memory.py)
# ============================================


class UserRepository(ABC):
    """使用者的儲存層介面"""

    @abstractmethod
    def select_by_id(self, user_id):
        """找不到時丟 NotFoundError"""

    @abstractmethod
    def select_by_email(self, email):
        """找不到時丟 NotFoundError"""

    @abstractmethod
    def select_by(self, key, value):
        """依欄位名稱篩選,回傳 list (可能是空的)"""

    @abstractmethod
    def select_all(self):
        ...

    @abstractmethod
    def insert(self, user):
        """回傳新使用者的 id"""

    @abstractmethod
    def update(self, user):
        ...

    @abstractmethod
    def delete(self, user_id):
        ...


class TaskRepository(ABC):
    """任務的儲存層介面"""

    @abstractmethod
    def select_by_id(self, task_id):
        ...

    @abstractmethod
    def select_all(self):
        ...

    @abstractmethod
    def select_by(self, filters):
        """
        filters: {欄位名稱: 值},條件之間用 AND

        空的 filters 等於 select_all;欄位不存在丟 BadRequestError
        """

    @abstractmethod
    def select_by_user_id(self, user_id):
        ...

    @abstractmethod
    def select_by_team_id(self, team_id):
        ...

    @abstractmethod
    def insert(self, task):
        ...

    @abstractmethod
    def update(self, task):
        """只更新 title / priority / team"""

    @abstractmethod
    def delete_by_id(self, task_id):
        ...

    @abstractmethod
    def delete_by_user_id(self, user_id):
        ...

    @abstractmethod
    def delete_by_team_id(self, team_id):
        ...


class TodoRepository(ABC):
    """待辦事項的儲存層介面"""

    @abstractmethod
    def select_by_id(self, todo_id):
        ...

    @abstractmethod
    def select_all(self):
        ...

    @abstractmethod
    def select_by_task_id(self, task_id):
        ...

    @abstractmethod
    def insert(self, todo):
        ...

    @abstractmethod
    def update(self, todo):
        ...

    @abstractmethod
    def delete(self, todo_id):
        ...


class TeamRepository(ABC):
    """團隊的儲存層介面"""

    @abstractmethod
    def select_by_id(self, team_id):
        ...

    @abstractmethod
    def select_all(self):
        ...

    @abstractmethod
    def insert(self, team):
        ...

    @abstractmethod
    def update(self, team):
        ...

    @abstractmethod
    def delete(self, team_id):
        ...


class RelationRepository(ABC):
    """使用者與團隊關聯 (users_team_xref) 的儲存層介面"""

    @abstractmethod
    def select_by_user_id(self, user_id):
        ...

    @abstractmethod
    def select_by_team_id(self, team_id):
        ...

    @abstractmethod
    def select_by_ids(self, team_id, user_id):
        """找不到時丟 NotFoundError"""

    @abstractmethod
    def insert(self, relation):
        ...

    @abstractmethod
    def delete_by_ids(self, team_id, user_id):
        ...

    @abstractmethod
    def delete_by_team_id(self, team_id):
        ...


@dataclass
class Repositories:
    """一組 repository,交給 services.build_services 組裝"""
    users: UserRepository
    tasks: TaskRepository
    todos: TodoRepository
    teams: TeamRepository
    relations: RelationRepository


# ============================================
# SQLAlchemy 實作
# ============================================

class SQLRepository:
    """共用的 session 操作"""

    model = None

    def __init__(self, db):
        self.db = db

    @property
    def session(self):
        return self.db.session

    def _column(self, name):
        """用資料表的欄位名稱 (例如 id_user) 找 Column"""
        for column in self.model.__table__.columns:
            if column.name == name:
                return column
        raise BadRequestError(f"column {name} doesn't exist")

    def _get_row(self, pk):
        row = self.session.get(self.model, pk)
        if row is None:
            raise NotFoundError()
        return row

    def _add(self, row):
        try:
            self.session.add(row)
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            logger.warning(f"Insert into {self.model.__tablename__} rejected: {str(e.orig)}")
            raise AlreadyExistsError() from e

    def _commit(self):
        self.session.commit()

    def _delete_where(self, *criteria):
        """刪除符合條件的資料,回傳刪除的筆數"""
        count = self.model.query.filter(*criteria).delete(synchronize_session=False)
        self.session.commit()
        return count


# ============================================
# 1. Users
# ============================================

def _as_utc(value):
    """SQLite 不存時區,讀回來的 naive datetime 一律視為 UTC"""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _user_from_row(row):
    return User(
        id=row.id,
        login=row.login,
        email=row.email,
        password=row.password,
        created_at=_as_utc(row.created_at),
        image_id=row.image_id
    )


class SQLUserRepository(SQLRepository, UserRepository):
    model = UserModel

    def select_by_id(self, user_id):
        return _user_from_row(self._get_row(user_id))

    def select_by_email(self, email):
        row = UserModel.query.filter_by(email=email).first()
        if row is None:
            raise NotFoundError()
        return _user_from_row(row)

    def select_by(self, key, value):
        rows = UserModel.query.filter(self._column(key) == value).all()
        return [_user_from_row(row) for row in rows]

    def select_all(self):
        return [_user_from_row(row) for row in UserModel.query.all()]

    def insert(self, user):
        self._add(UserModel(
            id=user.id,
            login=user.login,
            email=user.email,
            password=user.password,
            created_at=user.created_at,
            image_id=user.image_id
        ))
        return user.id

    def update(self, user):
        row = self._get_row(user.id)
        row.login = user.login
        row.email = user.email
        row.password = user.password
        row.image_id = user.image_id
        try:
            self._commit()
        except IntegrityError as e:
            self.session.rollback()
            raise AlreadyExistsError() from e

    def delete(self, user_id):
        if self._delete_where(UserModel.id == user_id) == 0:
            raise NotFoundError()


# ============================================
# 2. Tasks
# ============================================

def _task_from_row(row):
    return Task(
        id=row.id,
        title=row.title,
        priority=row.priority,
        user_id=row.user_id,
        team_id=row.team_id
    )


class SQLTaskRepository(SQLRepository, TaskRepository):
    model = TaskModel

    def select_by_id(self, task_id):
        return _task_from_row(self._get_row(task_id))

    def select_all(self):
        return [_task_from_row(row) for row in TaskModel.query.all()]

    def select_by(self, filters):
        if not filters:
            return self.select_all()

        criteria = [self._column(key) == value for key, value in filters.items()]
        rows = TaskModel.query.filter(*criteria).all()
        return [_task_from_row(row) for row in rows]

    def select_by_user_id(self, user_id):
        rows = TaskModel.query.filter_by(user_id=user_id).all()
        return [_task_from_row(row) for row in rows]

    def select_by_team_id(self, team_id):
        rows = TaskModel.query.filter_by(team_id=team_id).all()
        return [_task_from_row(row) for row in rows]

    def insert(self, task):
        self._add(TaskModel(
            id=task.id,
            title=task.title,
            priority=task.priority,
            user_id=task.user_id,
            team_id=task.team_id
        ))
        return task.id

    def update(self, task):
        row = self._get_row(task.id)
        row.title = task.title
        row.priority = task.priority
        row.team_id = task.team_id
        self._commit()

    def delete_by_id(self, task_id):
        if self._delete_where(TaskModel.id == task_id) == 0:
            raise NotFoundError()

    def delete_by_user_id(self, user_id):
        return self._delete_where(TaskModel.user_id == user_id)

    def delete_by_team_id(self, team_id):
        return self._delete_where(TaskModel.team_id == team_id)


# ============================================
# 3. Todos
# ============================================

def _todo_from_row(row):
    return Todo(
        id=row.id,
        title=row.title,
        text=row.text,
        complete=row.complete,
        task_id=row.task_id
    )


class SQLTodoRepository(SQLRepository, TodoRepository):
    model = TodoModel

    def select_by_id(self, todo_id):
        return _todo_from_row(self._get_row(todo_id))

    def select_all(self):
        return [_todo_from_row(row) for row in TodoModel.query.all()]

    def select_by_task_id(self, task_id):
        rows = TodoModel.query.filter_by(task_id=task_id).all()
        return [_todo_from_row(row) for row in rows]

    def insert(self, todo):
        self._add(TodoModel(
            id=todo.id,
            title=todo.title,
            text=todo.text,
            complete=todo.complete,
            task_id=todo.task_id
        ))
        return todo.id

    def update(self, todo):
        row = self._get_row(todo.id)
        row.title = todo.title
        row.text = todo.text
        row.complete = todo.complete
        row.task_id = todo.task_id
        self._commit()

    def delete(self, todo_id):
        if self._delete_where(TodoModel.id == todo_id) == 0:
            raise NotFoundError()


# ============================================
# 4. Teams
# ============================================

def _team_from_row(row):
    return Team(id=row.id, name=row.name)


class SQLTeamRepository(SQLRepository, TeamRepository):
    model = TeamModel

    def select_by_id(self, team_id):
        return _team_from_row(self._get_row(team_id))

    def select_all(self):
        return [_team_from_row(row) for row in TeamModel.query.all()]

    def insert(self, team):
        self._add(TeamModel(id=team.id, name=team.name))
        return team.id

    def update(self, team):
        row = self._get_row(team.id)
        row.name = team.name
        self._commit()

    def delete(self, team_id):
        if self._delete_where(TeamModel.id == team_id) == 0:
            raise NotFoundError()


# ============================================
# 5. Relations
# ============================================

def _relation_from_row(row):
    return UserTeamRelation(user_id=row.user_id, team_id=row.team_id)


class SQLRelationRepository(SQLRepository, RelationRepository):
    model = UserTeamModel

    def select_by_user_id(self, user_id):
        rows = UserTeamModel.query.filter_by(user_id=user_id).all()
        return [_relation_from_row(row) for row in rows]

    def select_by_team_id(self, team_id):
        rows = UserTeamModel.query.filter_by(team_id=team_id).all()
        return [_relation_from_row(row) for row in rows]

    def select_by_ids(self, team_id, user_id):
        row = UserTeamModel.query.filter_by(user_id=user_id, team_id=team_id).first()
        if row is None:
            raise NotFoundError()
        return _relation_from_row(row)

    def insert(self, relation):
        self._add(UserTeamModel(user_id=relation.user_id, team_id=relation.team_id))

    def delete_by_ids(self, team_id, user_id):
        deleted = self._delete_where(
            UserTeamModel.team_id == team_id,
            UserTeamModel.user_id == user_id
        )
        if deleted == 0:
            raise NotFoundError()

    def delete_by_team_id(self, team_id):
        return self._delete_where(UserTeamModel.team_id == team_id)


def make_sql_repositories(db):
    """建立 SQLAlchemy 版的 repository 組合"""
    return Repositories(
        users=SQLUserRepository(db),
        tasks=SQLTaskRepository(db),
        todos=SQLTodoRepository(db),
        teams=SQLTeamRepository(db),
        relations=SQLRelationRepository(db)
    )
