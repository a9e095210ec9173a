# blueprints/auth/routes.py
from __future__ import annotations
import time
from functools import wraps
from typing import Callable, Optional

from flask import Blueprint, request, jsonify, abort, current_app
from flask_login import login_user, logout_user, login_required, current_user

from extensions import login_manager
from models import User, Role

api_bp = Blueprint("auth_api", __name__)

# ---- безопасные значения по умолчанию
DEFAULT_RL_MAX = 5
DEFAULT_RL_WIN = 300  # 5 минут
_login_attempts: dict[str, list[float]] = {}  # ключ: ip|email -> [timestamps]

# ---------- rate limit ----------
def _rl_key(email: str) -> str:
    ip = request.headers.get("X-Forwarded-For", request.remote_addr or "0.0.0.0").split(",")[0].strip()
    return f"{ip}|{(email or '').lower()}"

def _rl_check_and_hit(email: str) -> bool:
    now = time.time()
    win = current_app.config.get("AUTH_RL_WINDOW", DEFAULT_RL_WIN)
    mx = current_app.config.get("AUTH_RL_MAX", DEFAULT_RL_MAX)
    key = _rl_key(email)
    bucket = _login_attempts.setdefault(key, [])
    # purge старых
    cutoff = now - win
    while bucket and bucket[0] < cutoff:
        bucket.pop(0)
    if len(bucket) >= mx:
        return False
    bucket.append(now)
    return True

def reset_rate_limits() -> None:
    _login_attempts.clear()

# ---------- декораторы ролей ----------
def admin_required(fn: Callable):
    @wraps(fn)
    @login_required
    def wrapper(*args, **kwargs):
        if getattr(current_user, "role", None) != Role.ADMIN.value:
            abort(403)
        return fn(*args, **kwargs)
    return wrapper

def customer_required(fn: Callable):
    @wraps(fn)
    @login_required
    def wrapper(*args, **kwargs):
        # админ тоже может оформить заказ (тестовые заказы из back-office)
        if getattr(current_user, "role", None) not in (Role.CUSTOMER.value, Role.ADMIN.value):
            abort(403)
        return fn(*args, **kwargs)
    return wrapper

# ---------- обработчики 401/403 ----------
@login_manager.unauthorized_handler
def _unauth():
    return jsonify({"ok": False, "error": "unauthorized"}), 401

@api_bp.app_errorhandler(403)
def _forbidden(e):
    return jsonify({"ok": False, "error": "forbidden"}), 403

# ---------- API ----------
@api_bp.post("/auth/login")
def api_login():
    payload = request.get_json(silent=True) or request.form or {}
    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""

    if not email or not password:
        return jsonify({"ok": False, "error": "missing_credentials"}), 400

    if not _rl_check_and_hit(email):
        return jsonify({"ok": False, "error": "too_many_attempts"}), 429

    user: Optional[User] = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        return jsonify({"ok": False, "error": "invalid_credentials"}), 401

    if not user.is_active:
        return jsonify({"ok": False, "error": "inactive"}), 403

    login_user(user, remember=True)
    return jsonify({"ok": True, "user": {"id": user.id, "email": user.email, "role": user.role}})

@api_bp.post("/auth/logout")
@login_required
def api_logout():
    logout_user()
    return jsonify({"ok": True})

@api_bp.get("/auth/me")
@login_required
def api_me():
    return jsonify({"ok": True, "user": {"id": current_user.id, "email": current_user.email,
                                         "role": current_user.role}})
