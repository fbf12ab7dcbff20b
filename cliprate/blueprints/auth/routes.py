from flask import jsonify
from flask_login import login_user, login_required, current_user
from . import bp
from ...extensions import db
from .forms import LoginForm, SignupForm
from ...models.user import User
from ...services.identity import sign_out


def _form_errors(form):
    return jsonify({"error": "invalid_form", "fields": form.errors}), 400


@bp.post("/signup")
def signup():
    form = SignupForm()
    if not form.validate_on_submit():
        return _form_errors(form)
    email = form.email.data.strip().lower()
    if User.query.filter_by(email=email).first() is not None:
        return jsonify({"error": "email_taken", "message": "An account already uses this email"}), 409
    user = User(email=email, name=form.name.data.strip(), country=(form.country.data or "").strip() or None)
    user.set_password(form.password.data)
    db.session.add(user)
    db.session.commit()
    login_user(user)
    return jsonify(user.to_dict()), 201


@bp.post("/login")
def login():
    form = LoginForm()
    if not form.validate_on_submit():
        return _form_errors(form)
    user = User.query.filter_by(email=form.email.data.strip().lower()).first()
    if user and user.check_password(form.password.data):
        login_user(user)
        return jsonify(user.to_dict())
    return jsonify({"error": "invalid_credentials", "message": "Invalid credentials"}), 401


@bp.post("/logout")
@login_required
def logout():
    sign_out()
    return jsonify({"signed_out": True})


@bp.get("/me")
@login_required
def me():
    return jsonify(current_user.to_dict())
