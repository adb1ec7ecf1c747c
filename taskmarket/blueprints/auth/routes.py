# taskmarket/blueprints/auth/routes.py
from flask import jsonify, current_app
from flask_login import login_user, logout_user, login_required, current_user
from flask_wtf.csrf import generate_csrf
from ...extensions import db
from ...models.user import User
from ..utils import form_errors
from . import auth_bp
from .forms import RegisterForm, LoginForm


# -----------------
# CSRF token for JSON clients (send back as X-CSRFToken)
# -----------------

@auth_bp.get('/csrf')
def csrf_token():
    return jsonify({"csrf_token": generate_csrf()})


# -----------------
# Register
# -----------------

@auth_bp.post('/register')
def register():
    form = RegisterForm()
    if not form.validate_on_submit():
        return jsonify(form_errors(form)), 400

    user = User(
        full_name=form.full_name.data.strip(),
        email=form.email.data.strip().lower(),
    )
    user.set_password(form.password.data)
    db.session.add(user)
    db.session.commit()

    login_user(user)
    current_app.logger.info("user %s registered", user.id)
    return jsonify({"user": user.to_dict()}), 201


# -----------------
# Login / Logout
# -----------------

@auth_bp.post('/login')
def login():
    form = LoginForm()
    if not form.validate_on_submit():
        return jsonify(form_errors(form)), 400

    email = form.email.data.strip().lower()
    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(form.password.data):
        current_app.logger.warning("failed login for %s", email)
        return jsonify({"error": "invalid_credentials", "message": "Invalid email or password."}), 401

    login_user(user, remember=bool(form.remember.data))
    return jsonify({"user": user.to_dict()})


@auth_bp.post('/logout')
@login_required
def logout():
    logout_user()
    return jsonify({"ok": True, "message": "You have been logged out."})


@auth_bp.get('/me')
@login_required
def me():
    return jsonify({"user": current_user.to_dict()})
