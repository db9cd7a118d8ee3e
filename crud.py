"""
Credential and task stores over a SQLAlchemy session.

Task mutations are single statements scoped by both task id and owner id;
a statement that touches no row means the task is missing or belongs to
someone else, and both cases raise `NotFound`.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from errors import Conflict, NotFound, ValidationFailed
from models import Task, User, utcnow
from schemas import TaskCreate, TaskUpdate, validate_payload
from security import get_password_hash, verify_password

logger = logging.getLogger(__name__)

# Largest id a 64-bit INTEGER primary key can hold
MAX_TASK_ID = 2**63 - 1


# Credential store
def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def register_user(db: Session, email: str, password: str, name: Optional[str] = None) -> User:
    """Create a user with a hashed password. Raises `Conflict` if the email is taken."""
    if get_user_by_email(db, email) is not None:
        raise Conflict()

    db_user = User(email=email, name=name or None, password=get_password_hash(password))
    db.add(db_user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        db.rollback()
        raise Conflict()
    db.refresh(db_user)
    logger.info("Registered user %s", db_user.id)
    return db_user


def verify_credentials(db: Session, email: str, password: str) -> Optional[User]:
    """Return the user if the password matches, else None. Unknown email also gives None."""
    user = get_user_by_email(db, email)
    if user is None:
        return None
    if not verify_password(password, user.password):
        return None
    return user


def _storable_id(task_id: int) -> bool:
    return 1 <= task_id <= MAX_TASK_ID


# Ownership guard
def authorize_task_access(db: Session, task_id: int, user_id: int) -> bool:
    if not _storable_id(task_id):
        return False
    owned = db.query(Task).filter(Task.id == task_id, Task.user_id == user_id).exists()
    return bool(db.query(owned).scalar())


# Task store
def get_task(db: Session, task_id: int, owner_id: int) -> Task:
    if not _storable_id(task_id):
        raise NotFound()
    task = db.query(Task).filter(Task.id == task_id, Task.user_id == owner_id).first()
    if task is None:
        raise NotFound()
    return task


def list_tasks(db: Session, owner_id: int) -> List[Task]:
    return (
        db.query(Task)
        .filter(Task.user_id == owner_id)
        .order_by(Task.created_at.desc(), Task.id.desc())
        .all()
    )


def create_task(db: Session, owner_id: int, title: str) -> Task:
    result = validate_payload(TaskCreate, {"title": title})
    if not result.ok:
        raise ValidationFailed(result.errors)

    now = utcnow()
    db_task = Task(
        title=result.data.title,
        completed=False,
        user_id=owner_id,
        created_at=now,
        updated_at=now,
    )
    db.add(db_task)
    db.commit()
    db.refresh(db_task)
    logger.info("User %s created task %s", owner_id, db_task.id)
    return db_task


def update_task(db: Session, task_id: int, owner_id: int, patch: Dict[str, Any]) -> Task:
    result = validate_payload(TaskUpdate, patch)
    if not result.ok:
        raise ValidationFailed(result.errors)
    if not _storable_id(task_id):
        raise NotFound()

    values = result.data.changes()
    values["updated_at"] = utcnow()
    updated = (
        db.query(Task)
        .filter(Task.id == task_id, Task.user_id == owner_id)
        .update(values, synchronize_session=False)
    )
    if updated == 0:
        db.rollback()
        raise NotFound()
    db.commit()
    logger.info("User %s updated task %s", owner_id, task_id)

    # The row can vanish between commit and re-read under a concurrent delete
    return get_task(db, task_id, owner_id)


def delete_task(db: Session, task_id: int, owner_id: int) -> None:
    if not _storable_id(task_id):
        raise NotFound()
    deleted = (
        db.query(Task)
        .filter(Task.id == task_id, Task.user_id == owner_id)
        .delete(synchronize_session=False)
    )
    if deleted == 0:
        db.rollback()
        raise NotFound()
    db.commit()
    logger.info("User %s deleted task %s", owner_id, task_id)
