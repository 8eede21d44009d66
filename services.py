from datetime import datetime, timezone
from entities import User, new_id
from errors import NotFoundError
import logging

logger = logging.getLogger(__name__)

# bcrypt 只處理前 72 bytes,新版 bcrypt 對更長的輸入直接丟 ValueError
MAX_PASSWORD_BYTES = 72

# ============================================
# Service (use case) 層
# 每個 service 只持有一個 repository,本身不存狀態
# ============================================


def _require_results(items):
    """篩選查詢查不到東西時轉成 NotFoundError"""
    if not items:
        raise NotFoundError()
    return items


# ============================================
# 1. 使用者
# ============================================

class UserService:
    """
    使用者 use case

    hasher 是 flask_bcrypt.Bcrypt 實例 (app.extensions['bcrypt'])
    """

    def __init__(self, repository, hasher):
        self.repository = repository
        self.hasher = hasher

    def get_user(self, user_id):
        return self.repository.select_by_id(user_id)

    def find_users_by(self, key, value):
        return _require_results(self.repository.select_by(key, value))

    def find_user_by_email(self, email):
        return self.repository.select_by_email(email)

    def get_users_list(self):
        return self.repository.select_all()

    def hash_password(self, password):
        return self.hasher.generate_password_hash(password).decode('utf-8')

    def verify_password(self, user, password):
        """bcrypt 比對 (constant-time),超過長度上限的密碼不可能對得上"""
        if len(password.encode('utf-8')) > MAX_PASSWORD_BYTES:
            return False
        return self.hasher.check_password_hash(user.password, password)

    def create_user(self, login, email, password):
        """
        建立使用者

        密碼先用 bcrypt 加密再存,回傳新使用者的 id
        """
        user = User(
            id=new_id(),
            login=login,
            email=email,
            password=self.hash_password(password),
            created_at=datetime.now(timezone.utc)
        )
        return self.repository.insert(user)

    def update_user(self, user):
        self.repository.update(user)

    def delete_user(self, user_id):
        self.repository.delete(user_id)


# ============================================
# 2. 任務
# ============================================

class TaskService:

    def __init__(self, repository):
        self.repository = repository

    def get_task_by_id(self, task_id):
        return self.repository.select_by_id(task_id)

    def get_tasks_list(self):
        return self.repository.select_all()

    def get_tasks_by(self, filters):
        return _require_results(self.repository.select_by(filters))

    def get_tasks_by_user_id(self, user_id):
        return self.repository.select_by_user_id(user_id)

    def get_tasks_by_team_id(self, team_id):
        return self.repository.select_by_team_id(team_id)

    def create_task(self, task):
        if task.id is None:
            task.id = new_id()
        return self.repository.insert(task)

    def update_task(self, task):
        self.repository.update(task)

    def delete_task_by_id(self, task_id):
        self.repository.delete_by_id(task_id)

    def delete_tasks_by_user_id(self, user_id):
        return self.repository.delete_by_user_id(user_id)

    def delete_tasks_by_team_id(self, team_id):
        return self.repository.delete_by_team_id(team_id)


# ============================================
# 3. 待辦事項
# ============================================

class TodoService:

    def __init__(self, repository):
        self.repository = repository

    def get_todo_by_id(self, todo_id):
        return self.repository.select_by_id(todo_id)

    def get_todos_list(self):
        return self.repository.select_all()

    def get_todos_by_task_id(self, task_id):
        return _require_results(self.repository.select_by_task_id(task_id))

    def create_todo(self, todo):
        if todo.id is None:
            todo.id = new_id()
        return self.repository.insert(todo)

    def update_todo(self, todo):
        self.repository.update(todo)

    def delete_todo(self, todo_id):
        self.repository.delete(todo_id)


# ============================================
# 4. 團隊
# ============================================

class TeamService:

    def __init__(self, repository):
        self.repository = repository

    def select_team_by_id(self, team_id):
        return self.repository.select_by_id(team_id)

    def select_teams_list(self):
        return self.repository.select_all()

    def create_team(self, team):
        if team.id is None:
            team.id = new_id()
        return self.repository.insert(team)

    def update_team(self, team):
        self.repository.update(team)

    def delete_team(self, team_id):
        self.repository.delete(team_id)


# ============================================
# 5. 使用者與團隊的關聯
# ============================================

class RelationService:
    """管理 users_team_xref,可以從使用者或團隊任一邊查"""

    def __init__(self, repository):
        self.repository = repository

    def select_relations_by_user_id(self, user_id):
        return _require_results(self.repository.select_by_user_id(user_id))

    def select_relations_by_team_id(self, team_id):
        return _require_results(self.repository.select_by_team_id(team_id))

    def select_relation_by_ids(self, team_id, user_id):
        return self.repository.select_by_ids(team_id, user_id)

    def create_relation(self, relation):
        self.repository.insert(relation)

    def delete_relation_by_ids(self, team_id, user_id):
        self.repository.delete_by_ids(team_id, user_id)

    def delete_relations_by_team_id(self, team_id):
        count = self.repository.delete_by_team_id(team_id)
        logger.info(f"Deleted {count} membership relation(s) of team {team_id}")
        return count


class Services:
    """app.extensions['services'] 裡放的就是這個"""

    def __init__(self, users, tasks, todos, teams, relations):
        self.users = users
        self.tasks = tasks
        self.todos = todos
        self.teams = teams
        self.relations = relations


def build_services(repositories, hasher):
    """用一組 repository 組出所有 service"""
    return Services(
        users=UserService(repositories.users, hasher),
        tasks=TaskService(repositories.tasks),
        todos=TodoService(repositories.todos),
        teams=TeamService(repositories.teams),
        relations=RelationService(repositories.relations)
    )
