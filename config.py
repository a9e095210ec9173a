from __future__ import annotations
import os
from decimal import Decimal
from pathlib import Path

class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    BASE_DIR = Path(__file__).resolve().parent
    # SQLite file in project directory, Postgres через DATABASE_URL
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'app.db'}")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False

    # CSRF (Flask-WTF): токен в заголовке, как ждёт фронт
    WTF_CSRF_TIME_LIMIT = None
    WTF_CSRF_HEADERS = ["X-CSRF-Token", "X-CSRFToken"]

    # вход: не больше AUTH_RL_MAX попыток за AUTH_RL_WINDOW секунд
    AUTH_RL_MAX = 5
    AUTH_RL_WINDOW = 300

    # резервирование слота: попытки при блокировках/таймаутах БД
    SLOT_RESERVE_RETRIES = int(os.getenv("SLOT_RESERVE_RETRIES", "3"))
    SLOT_RESERVE_BACKOFF = float(os.getenv("SLOT_RESERVE_BACKOFF", "0.05"))

    TAX_RATE = Decimal(os.getenv("TAX_RATE", "0"))
    CURRENCY = os.getenv("CURRENCY", "INR")
    STORE_TZ = os.getenv("STORE_TZ", "Asia/Kolkata")

    SEED_TEST_DATA = False
    DEFAULT_USERS: list[dict] = []

class DevConfig(BaseConfig):
    DEBUG = True
    SEED_TEST_DATA = True
    DEFAULT_USERS = [
        {"email": "admin@example.com", "password": "pass", "role": "ADMIN"},
        {"email": "customer@example.com", "password": "pass", "role": "CUSTOMER"},
    ]

class TestConfig(BaseConfig):
    TESTING = True
    # каждый create_app получает свою БД в памяти, тесты не текут друг в друга
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SLOT_RESERVE_BACKOFF = 0.0

class ProdConfig(BaseConfig):
    DEBUG = False

config_map = {
    "dev": DevConfig,
    "test": TestConfig,
    "prod": ProdConfig,
    "default": DevConfig,
}
