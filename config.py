import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file)
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./b2b_credit.db")
    DB_CREATE_TABLES = bool(data.get("DB_CREATE_TABLES", True))
    API_PREFIX = data.get("API_PREFIX", "")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    API_RELOAD = bool(data.get("API_RELOAD", False))
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    AUTH_DISABLED = bool(data.get("AUTH_DISABLED", False))
    ENABLE_LOGGING_MIDDLEWARE = bool(data.get("ENABLE_LOGGING_MIDDLEWARE", 1))
    ENABLE_SENTRY = data.get("ENABLE_SENTRY", 0)
    DSN_SENTRY = data.get("DSN_SENTRY", "")
    SENTRY_ENVIRONMENT = data.get("SENTRY_ENVIRONMENT", "dev")

    # Shopify app credentials (webhook HMAC + Admin API)
    SHOPIFY_API_SECRET = data.get("SHOPIFY_API_SECRET", "")
    SHOPIFY_API_VERSION = data.get("SHOPIFY_API_VERSION", "2025-01")
    SHOPIFY_ADMIN_TIMEOUT_SECONDS = data.get("SHOPIFY_ADMIN_TIMEOUT_SECONDS", 10.0)

    # Manual review alerts for orders flagged by post-hoc credit validation
    REVIEW_NOTIFICATION_WEBHOOK = data.get("REVIEW_NOTIFICATION_WEBHOOK", None)

    # Credit ledger audit (transaction replay vs. live order balances)
    AUDIT_ENABLED = bool(data.get("AUDIT_ENABLED", True))
    AUDIT_INTERVAL_SECONDS = data.get("AUDIT_INTERVAL_SECONDS", 86400)  # Daily
