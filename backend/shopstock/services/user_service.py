# Overview: Service-layer operations for user profiles and listings.

from sqlalchemy.exc import IntegrityError

from ..errors import InvalidInputError
from ..extensions import db
from ..models import User
from .auth_service import validate_username


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.created_at.asc(), User.id.asc()).all()


def update_display_name(user: User, new_name) -> User:
    """
    Change the caller's username (the display name shown on items and sales).

    Usernames stay globally unique.
    """
    username = validate_username(new_name)
    if username == user.username:
        return user

    taken = db.session.query(User.id).filter(User.username == username, User.id != user.id).first()
    if taken:
        raise InvalidInputError("Username already taken", details={"username": username})

    user.username = username
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise InvalidInputError("Username already taken", details={"username": username})
    return user
