import os
from datetime import timedelta


def _int_env(name, default):
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    MAX_CONTENT_LENGTH = 1 * 1024 * 1024
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-secret-change-me")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=1)

    # PayPal
    PAYPAL_CLIENT_ID = os.getenv("PAYPAL_CLIENT_ID", "")
    PAYPAL_CLIENT_SECRET = os.getenv("PAYPAL_CLIENT_SECRET", "")
    PAYPAL_MODE = os.getenv("PAYPAL_MODE", "sandbox")  # "sandbox" | "live"
    PAYPAL_TIMEOUT = _int_env("PAYPAL_TIMEOUT", 15)     # seconds
    PAYPAL_CURRENCY = os.getenv("PAYPAL_CURRENCY", "USD")
    BRAND_NAME = os.getenv("BRAND_NAME", "CraftHub")
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

    VERIFICATION_CODE_TTL_MINUTES = _int_env("VERIFICATION_CODE_TTL_MINUTES", 15)

    # chat assistant session memory
    CHAT_MAX_SESSIONS = _int_env("CHAT_MAX_SESSIONS", 1000)
    CHAT_SESSION_TTL_SECONDS = _int_env("CHAT_SESSION_TTL_SECONDS", 3600)
    CHAT_MAX_MESSAGES = _int_env("CHAT_MAX_MESSAGES", 20)

    @staticmethod
    def init_app(app):
        if not os.getenv("DATABASE_URL"):
            os.makedirs(app.instance_path, exist_ok=True)
            app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{os.path.join(app.instance_path, 'app.db')}"
        else:
            app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL")


class TestConfig(Config):
    TESTING = True
    JWT_SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"
    PAYPAL_CLIENT_ID = ""
    PAYPAL_CLIENT_SECRET = ""
    LOG_LEVEL = "DEBUG"

    @staticmethod
    def init_app(app):
        app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite://"
