import dataclasses
from repositories import (
    Repositories, UserRepository, TaskRepository, TodoRepository,
    TeamRepository, RelationRepository
)
from errors import NotFoundError, AlreadyExistsError, BadRequestError

# ============================================
# 記憶體版 repository
# 測試用,也可以在沒有資料庫時跑 create_app(repositories=...)
# 回傳的都是複本,呼叫端改 entity 不會直接改到 store
# ============================================


def _copy(entity):
    return dataclasses.replace(entity)


class MemUserRepository(UserRepository):
    # 資料表欄位名稱 -> entity 屬性
    columns = {
        'id_user': 'id',
        'login': 'login',
        'email': 'email',
        'password': 'password',
        'created_at': 'created_at',
        'id_image': 'image_id',
    }

    def __init__(self, tasks=None, relations=None):
        self.rows = {}
        # 對應 SQL 的 ON DELETE CASCADE
        self.tasks = tasks
        self.relations = relations

    def select_by_id(self, user_id):
        if user_id not in self.rows:
            raise NotFoundError()
        return _copy(self.rows[user_id])

    def select_by_email(self, email):
        for user in self.rows.values():
            if user.email == email:
                return _copy(user)
        raise NotFoundError()

    def select_by(self, key, value):
        if key not in self.columns:
            raise BadRequestError(f"column {key} doesn't exist")
        attr = self.columns[key]
        return [_copy(u) for u in self.rows.values() if getattr(u, attr) == value]

    def select_all(self):
        return [_copy(u) for u in self.rows.values()]

    def insert(self, user):
        if user.id in self.rows:
            raise AlreadyExistsError()
        if any(u.email == user.email for u in self.rows.values()):
            raise AlreadyExistsError()
        self.rows[user.id] = _copy(user)
        return user.id

    def update(self, user):
        if user.id not in self.rows:
            raise NotFoundError()
        if any(u.email == user.email and u.id != user.id for u in self.rows.values()):
            raise AlreadyExistsError()
        self.rows[user.id] = _copy(user)

    def delete(self, user_id):
        if self.rows.pop(user_id, None) is None:
            raise NotFoundError()
        if self.tasks is not None:
            self.tasks.delete_by_user_id(user_id)
        if self.relations is not None:
            self.relations.delete_by_user_id(user_id)


class MemTaskRepository(TaskRepository):
    columns = {
        'id_task': 'id',
        'title': 'title',
        'priority': 'priority',
        'id_user': 'user_id',
        'id_team': 'team_id',
    }

    def __init__(self, todos=None):
        self.rows = {}
        self.todos = todos

    def select_by_id(self, task_id):
        if task_id not in self.rows:
            raise NotFoundError()
        return _copy(self.rows[task_id])

    def select_all(self):
        return [_copy(t) for t in self.rows.values()]

    def select_by(self, filters):
        for key in filters:
            if key not in self.columns:
                raise BadRequestError(f"column {key} doesn't exist")

        return [
            _copy(t) for t in self.rows.values()
            if all(getattr(t, self.columns[k]) == v for k, v in filters.items())
        ]

    def select_by_user_id(self, user_id):
        return [_copy(t) for t in self.rows.values() if t.user_id == user_id]

    def select_by_team_id(self, team_id):
        return [_copy(t) for t in self.rows.values() if t.team_id == team_id]

    def insert(self, task):
        if task.id in self.rows:
            raise AlreadyExistsError()
        self.rows[task.id] = _copy(task)
        return task.id

    def update(self, task):
        stored = self.rows.get(task.id)
        if stored is None:
            raise NotFoundError()
        stored.title = task.title
        stored.priority = task.priority
        stored.team_id = task.team_id

    def _drop(self, task_id):
        del self.rows[task_id]
        if self.todos is not None:
            self.todos.delete_by_task_id(task_id)

    def delete_by_id(self, task_id):
        if task_id not in self.rows:
            raise NotFoundError()
        self._drop(task_id)

    def _delete_matching(self, attr, value):
        ids = [t.id for t in self.rows.values() if getattr(t, attr) == value]
        for task_id in ids:
            self._drop(task_id)
        return len(ids)

    def detach_team(self, team_id):
        """團隊被刪除時對應 ON DELETE SET NULL"""
        for task in self.rows.values():
            if task.team_id == team_id:
                task.team_id = None

    def delete_by_user_id(self, user_id):
        return self._delete_matching('user_id', user_id)

    def delete_by_team_id(self, team_id):
        return self._delete_matching('team_id', team_id)


class MemTodoRepository(TodoRepository):

    def __init__(self):
        self.rows = {}

    def select_by_id(self, todo_id):
        if todo_id not in self.rows:
            raise NotFoundError()
        return _copy(self.rows[todo_id])

    def select_all(self):
        return [_copy(t) for t in self.rows.values()]

    def select_by_task_id(self, task_id):
        return [_copy(t) for t in self.rows.values() if t.task_id == task_id]

    def insert(self, todo):
        if todo.id in self.rows:
            raise AlreadyExistsError()
        self.rows[todo.id] = _copy(todo)
        return todo.id

    def update(self, todo):
        if todo.id not in self.rows:
            raise NotFoundError()
        self.rows[todo.id] = _copy(todo)

    def delete(self, todo_id):
        if self.rows.pop(todo_id, None) is None:
            raise NotFoundError()

    def delete_by_task_id(self, task_id):
        ids = [t.id for t in self.rows.values() if t.task_id == task_id]
        for todo_id in ids:
            del self.rows[todo_id]


class MemTeamRepository(TeamRepository):

    def __init__(self, tasks=None, relations=None):
        self.rows = {}
        self.tasks = tasks
        self.relations = relations

    def select_by_id(self, team_id):
        if team_id not in self.rows:
            raise NotFoundError()
        return _copy(self.rows[team_id])

    def select_all(self):
        return [_copy(t) for t in self.rows.values()]

    def insert(self, team):
        if team.id in self.rows:
            raise AlreadyExistsError()
        self.rows[team.id] = _copy(team)
        return team.id

    def update(self, team):
        if team.id not in self.rows:
            raise NotFoundError()
        self.rows[team.id] = _copy(team)

    def delete(self, team_id):
        if self.rows.pop(team_id, None) is None:
            raise NotFoundError()
        if self.tasks is not None:
            self.tasks.detach_team(team_id)
        if self.relations is not None:
            self.relations.delete_by_team_id(team_id)


class MemRelationRepository(RelationRepository):

    def __init__(self):
        # key: (team_id, user_id)
        self.rows = {}

    def select_by_user_id(self, user_id):
        return [_copy(r) for r in self.rows.values() if r.user_id == user_id]

    def select_by_team_id(self, team_id):
        return [_copy(r) for r in self.rows.values() if r.team_id == team_id]

    def select_by_ids(self, team_id, user_id):
        relation = self.rows.get((team_id, user_id))
        if relation is None:
            raise NotFoundError()
        return _copy(relation)

    def insert(self, relation):
        key = (relation.team_id, relation.user_id)
        if key in self.rows:
            raise AlreadyExistsError()
        self.rows[key] = _copy(relation)

    def delete_by_ids(self, team_id, user_id):
        if self.rows.pop((team_id, user_id), None) is None:
            raise NotFoundError()

    def _delete_matching(self, attr, value):
        keys = [k for k, r in self.rows.items() if getattr(r, attr) == value]
        for key in keys:
            del self.rows[key]
        return len(keys)

    def delete_by_team_id(self, team_id):
        return self._delete_matching('team_id', team_id)

    def delete_by_user_id(self, user_id):
        return self._delete_matching('user_id', user_id)


def make_memory_repositories():
    """
    建立記憶體版的 repository 組合

    彼此串起來,刪除時的連動和 SQL 的 foreign key 規則一致:
    user -> task / 關聯 (cascade),task -> todo (cascade),
    team -> 關聯 (cascade)、task.team_id (set null)
    """
    todos = MemTodoRepository()
    tasks = MemTaskRepository(todos=todos)
    relations = MemRelationRepository()
    return Repositories(
        users=MemUserRepository(tasks=tasks, relations=relations),
        tasks=tasks,
        todos=todos,
        teams=MemTeamRepository(tasks=tasks, relations=relations),
        relations=relations
    )
