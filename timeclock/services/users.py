"""Create and update dashboard users. Passwords are hashed here, never in the model."""
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from timeclock.core.roles import UserRole
from timeclock.core.security import get_password_hash
from timeclock.models import User, normalize_locations


def find_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == (username or "").strip().lower()).first()


def create_user(
    db: Session,
    username: str,
    password: str,
    name: str = "",
    role: str = UserRole.USER.value,
    location=None,
    rights: Optional[Iterable[str]] = None,
) -> User:
    """Add a user to the session and flush; the caller commits."""
    user = User(
        name=(name or "").strip(),
        username=username,
        hashed_password=get_password_hash(password),
        role=role,
        location=normalize_locations(location),
        rights=list(rights or []),
    )
    db.add(user)
    db.flush()
    return user


def update_user(db: Session, user: User, **changes) -> User:
    """Apply the given changes; ``None`` values are left untouched."""
    if changes.get("name") is not None:
        user.name = changes["name"].strip()
    if changes.get("username") is not None:
        user.username = changes["username"]
    if changes.get("password"):
        user.hashed_password = get_password_hash(changes["password"])
    if changes.get("role") is not None:
        user.role = changes["role"]
    if changes.get("location") is not None:
        user.location = normalize_locations(changes["location"])
    if changes.get("rights") is not None:
        user.rights = list(changes["rights"])
    db.flush()
    return user


def username_taken(db: Session, username: str, exclude_id: Optional[str] = None) -> bool:
    query = db.query(User).filter(User.username == username)
    if exclude_id:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None

