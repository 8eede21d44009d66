import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

# ============================================
# Entity 層
# 純資料結構,不含行為。id 由 service 在 insert 前產生
# ============================================

NIL_ID = uuid.UUID(int=0)


def new_id():
    """產生隨機 UUID (128-bit)"""
    return uuid.uuid4()


def is_id_valid(value):
    """None 或全零 UUID 視為無效"""
    return value is not None and value != NIL_ID


# ============================================
# 1. User
# ============================================
@dataclass
class User:
    login: str
    email: str
    password: str  # bcrypt hash
    created_at: Optional[datetime] = None
    image_id: Optional[uuid.UUID] = None
    id: Optional[uuid.UUID] = None


# ============================================
# 2. Task
# ============================================
@dataclass
class Task:
    title: str
    user_id: uuid.UUID
    priority: Optional[int] = None
    team_id: Optional[uuid.UUID] = None
    id: Optional[uuid.UUID] = None


# ============================================
# 3. Todo
# ============================================
@dataclass
class Todo:
    text: str
    task_id: uuid.UUID
    title: Optional[str] = None
    complete: bool = False
    id: Optional[uuid.UUID] = None


# ============================================
# 4. Team
# ============================================
@dataclass
class Team:
    name: str
    id: Optional[uuid.UUID] = None


# ============================================
# 5. UserTeamRelation (沒有自己的 id)
# ============================================
@dataclass
class UserTeamRelation:
    user_id: uuid.UUID
    team_id: uuid.UUID
