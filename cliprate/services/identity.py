from flask_login import current_user, logout_user

from .types import Actor


def current_actor():
    """The signed-in actor, or None for anonymous requests."""
    if not current_user or not current_user.is_authenticated:
        return None
    return Actor(id=current_user.id)


def sign_out():
    logout_user()
