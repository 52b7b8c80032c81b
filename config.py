import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite file for local dev; production points DATABASE_URL at Postgres
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "detailbook.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
    }

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Admin session cookie
    AUTH_COOKIE_NAME = "detailbook_session"

    # 8 hours session lifetime
    SESSION_LIFETIME_SECONDS = 8 * 60 * 60

    # Idle timeout: 20 minutes
    IDLE_TIMEOUT_SECONDS = 20 * 60

    # Session/cookie security defaults
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"

    # Per-IP fixed windows: (window seconds, max requests)
    LOGIN_RATE_WINDOW_SECONDS = 60
    LOGIN_RATE_MAX_REQUESTS = 15
    BOOKING_RATE_WINDOW_SECONDS = 60
    BOOKING_RATE_MAX_REQUESTS = 20
    CANCEL_RATE_WINDOW_SECONDS = 60
    CANCEL_RATE_MAX_REQUESTS = 30

    # Cancellation policy (0 = customers may cancel until the slot starts)
    CANCEL_CUTOFF_HOURS = int(os.getenv("CANCEL_CUTOFF_HOURS", "0"))

    # Bookable calendar
    SHOP_TIMEZONE = os.getenv("SHOP_TIMEZONE", "UTC")
    SLOT_DAY_START = os.getenv("SLOT_DAY_START", "09:00")
    SLOT_DAY_END = os.getenv("SLOT_DAY_END", "17:00")
    SLOT_MINUTES = int(os.getenv("SLOT_MINUTES", "30"))
    SLOT_EXCLUDED_WEEKDAYS = os.getenv("SLOT_EXCLUDED_WEEKDAYS", "5,6")  # Monday=0; weekends closed
    SLOT_HORIZON_DAYS = int(os.getenv("SLOT_HORIZON_DAYS", "30"))
    AVAILABILITY_DEFAULT_DAYS = 7

    # Public site (cancel links in emails)
    SITE_URL = os.getenv("SITE_URL", "http://localhost:5173")
    ADMIN_NOTIFY_EMAIL = os.getenv("ADMIN_NOTIFY_EMAIL")

    # Email (SMTP)
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
    SMTP_TIMEOUT_SECONDS = 10

    # Dev/tests only; real deployments run `flask db upgrade`
    CREATE_SCHEMA_ON_STARTUP = os.getenv("CREATE_SCHEMA_ON_STARTUP", "false").lower() == "true"

    # Basic app settings
    DEBUG = False
