import sqlite3
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine

db = SQLAlchemy()


@event.listens_for(Engine, 'connect')
def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite 預設不檢查 foreign key,要開啟 ON DELETE CASCADE / SET NULL 才會生效"""
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()

# ============================================
# 資料表定義
# 欄位名稱沿用 id_user / id_task 的命名,屬性名稱用 user_id / task_id
# ============================================


# ============================================
# 1. users
# ============================================
class UserModel(db.Model):
    __tablename__ = 'users'

    id = db.Column('id_user', db.Uuid, primary_key=True)
    login = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    image_id = db.Column('id_image', db.Uuid, nullable=True)


# ============================================
# 2. team
# ============================================
class TeamModel(db.Model):
    __tablename__ = 'team'

    id = db.Column('id_team', db.Uuid, primary_key=True)
    name = db.Column(db.String(255), nullable=False)


# ============================================
# 3. task
# ============================================
class TaskModel(db.Model):
    __tablename__ = 'task'

    id = db.Column('id_task', db.Uuid, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    priority = db.Column(db.Integer, nullable=True)
    user_id = db.Column(
        'id_user', db.Uuid,
        db.ForeignKey('users.id_user', link_to_name=True, ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    team_id = db.Column(
        'id_team', db.Uuid,
        db.ForeignKey('team.id_team', link_to_name=True, ondelete='SET NULL'),
        nullable=True,
        index=True
    )


# ============================================
# 4. todo
# ============================================
class TodoModel(db.Model):
    __tablename__ = 'todo'

    id = db.Column('id_todo', db.Uuid, primary_key=True)
    title = db.Column(db.String(255), nullable=True)
    text = db.Column(db.Text, nullable=False)
    complete = db.Column(db.Boolean, nullable=False, default=False)
    task_id = db.Column(
        'id_task', db.Uuid,
        db.ForeignKey('task.id_task', link_to_name=True, ondelete='CASCADE'),
        nullable=False,
        index=True
    )


# ============================================
# 5. 多對多關聯表：使用者與團隊
# ============================================
class UserTeamModel(db.Model):
    __tablename__ = 'users_team_xref'

    user_id = db.Column(
        'id_user', db.Uuid,
        db.ForeignKey('users.id_user', link_to_name=True, ondelete='CASCADE'),
        primary_key=True
    )
    team_id = db.Column(
        'id_team', db.Uuid,
        db.ForeignKey('team.id_team', link_to_name=True, ondelete='CASCADE'),
        primary_key=True
    )
