"""
User Authentication: Flask-Login blueprint.

Provides JSON register, login, and logout routes.
Uses werkzeug.security for password hashing.
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import LoginManager, UserMixin, login_required, login_user, logout_user, current_user
from werkzeug.security import generate_password_hash, check_password_hash

from audit import log_event
from db_stores import UserStoreDB
from extensions import limiter

MIN_PASSWORD_LENGTH = 6

auth_bp = Blueprint("auth", __name__)
login_manager = LoginManager()


class User(UserMixin):
    """Wraps a DB user row for Flask-Login."""

    def __init__(self, id: int, name: str, email: str, role: str = "user"):
        self.id = id
        self.name = name
        self.email = email
        self.role = role

    @property
    def is_admin(self):
        return self.role == "admin"

    @staticmethod
    def get(user_id: int):
        row = UserStoreDB.get(user_id)
        if row:
            return User(row["id"], row["name"], row["email"], row["role"])
        return None

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email, "role": self.role}


@login_manager.user_loader
def load_user(user_id):
    return User.get(int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "Authentication required"}), 401


def _credentials() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict()
    return data


@auth_bp.route("/register", methods=["POST"])
@limiter.limit("10 per hour")
def register():
    data = _credentials()
    name = (data.get("name") or "").strip()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not name or not email or not password:
        return jsonify({"error": "Name, email, and password are required"}), 400
    if len(password) < MIN_PASSWORD_LENGTH:
        return jsonify({"error": f"Password must be at least {MIN_PASSWORD_LENGTH} characters"}), 400
    if UserStoreDB.get_by_email(email):
        return jsonify({"error": "User with this email already exists"}), 400

    user_id = UserStoreDB.create(name, email, generate_password_hash(password))
    log_event("register", user_id, f"email={email}")

    user = User(user_id, name, email)
    login_user(user, remember=True)
    return jsonify({"user": user.to_dict()}), 201


@auth_bp.route("/login", methods=["POST"])
@limiter.limit("5 per minute")
def login():
    data = _credentials()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not email or not password:
        return jsonify({"error": "Email and password are required"}), 400

    row = UserStoreDB.get_by_email(email)
    if not row or not row["password_hash"] or not check_password_hash(row["password_hash"], password):
        return jsonify({"error": "Invalid email or password"}), 401

    user = User(row["id"], row["name"], row["email"], row["role"])
    login_user(user, remember=True)
    log_event("login_success", row["id"])
    return jsonify({"user": user.to_dict()})


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"success": True})


@auth_bp.route("/api/me")
@login_required
def me():
    return jsonify({"user": current_user.to_dict()})
