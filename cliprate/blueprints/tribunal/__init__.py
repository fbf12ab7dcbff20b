from flask import Blueprint

bp = Blueprint("tribunal", __name__)

from . import routes  # noqa: E402,F401
