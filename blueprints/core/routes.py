from __future__ import annotations
import json, logging
from datetime import datetime, timezone

from flask import g, jsonify, request
from flask_wtf.csrf import CSRFError, generate_csrf
from pydantic import ValidationError
from werkzeug.wrappers.response import Response

from extensions import csrf

from . import bp                 # используем bp из __init__.py
from . import api_bp
from .errors import CheckoutError

log = logging.getLogger(__name__)

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": _utcnow().isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in ("event", "path", "method", "status", "duration_ms",
                    "order_id", "slot_id", "delivery_date", "user_id", "error"):
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        return json.dumps(payload, ensure_ascii=False, default=str)

def _setup_structured_logging(app):
    has_json = any(
        isinstance(h, logging.StreamHandler)
        and isinstance(getattr(h, "formatter", None), JSONFormatter)
        for h in app.logger.handlers
    )
    if not has_json:
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        app.logger.addHandler(handler)
        app.logger.setLevel(logging.INFO)
    # логгеры сервисов (blueprints.*) пишут тем же форматом
    svc_logger = logging.getLogger("blueprints")
    if not any(isinstance(getattr(h, "formatter", None), JSONFormatter) for h in svc_logger.handlers):
        h = logging.StreamHandler()
        h.setFormatter(JSONFormatter())
        svc_logger.addHandler(h)
        svc_logger.setLevel(logging.INFO)

def _pydantic_errors_safe(ve: ValidationError):
    errs = ve.errors()
    for e in errs:
        if "ctx" in e and isinstance(e["ctx"], dict):
            e["ctx"] = {k: str(v) for k, v in e["ctx"].items()}
        e.pop("url", None)
    return errs

@api_bp.get("/auth/csrf")
@csrf.exempt          # токен выдаём без проверки
def get_csrf():
    token = generate_csrf()
    resp = jsonify({"csrf_token": token})
    resp.set_cookie("csrf_token", token, samesite="Lax")
    return resp

@bp.before_app_request
def _start_timer():
    g._req_start = _utcnow()

@bp.after_app_request
def _log_request(response: Response):
    try:
        duration_ms = int((_utcnow() - g._req_start).total_seconds() * 1000)
    except AttributeError:
        duration_ms = None
    extra = {
        "event": "http_request",
        "path": request.path,
        "method": request.method,
        "status": response.status_code,
        "duration_ms": duration_ms,
    }
    logging.getLogger("blueprints.http").info("request handled", extra=extra)
    return response

# ---------- единая обработка ошибок ----------
@bp.app_errorhandler(CheckoutError)
def _checkout_error(err: CheckoutError):
    return jsonify(err.to_dict()), err.http_status

@bp.app_errorhandler(ValidationError)
def _validation_error(err: ValidationError):
    return jsonify({"ok": False, "error": "validation_error", "detail": _pydantic_errors_safe(err)}), 422

@bp.app_errorhandler(CSRFError)
def _csrf_error(err: CSRFError):
    return jsonify({"ok": False, "error": "csrf_failed", "detail": err.description}), 400

@bp.record_once
def _on_register(state):
    _setup_structured_logging(state.app)

@bp.get("/health")
def health():
    return jsonify({
        "status": "ok",
        "ts": _utcnow().isoformat(timespec="seconds").replace("+00:00", "Z"),
    })
