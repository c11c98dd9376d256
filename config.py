import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./credits.db")
    API_PREFIX = data.get("API_PREFIX", "")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")

    # Balance cache
    CACHE_BACKEND = data.get("CACHE_BACKEND", "redis")  # "redis", "memory" (single process only) or "none"
    REDIS_URL = data.get("REDIS_URL", "redis://localhost:6379/0")
    BALANCE_CACHE_TTL_SECONDS = data.get("BALANCE_CACHE_TTL_SECONDS", 3600)

    # Balance mutations
    MAX_MUTATION_RETRIES = data.get("MAX_MUTATION_RETRIES", 3)

    # Session size limits
    MIN_QUESTIONS_PER_REQUEST = data.get("MIN_QUESTIONS_PER_REQUEST", 1)
    MAX_QUESTIONS_PER_REQUEST = data.get("MAX_QUESTIONS_PER_REQUEST", 10)
    MIN_TIME_LIMIT_SECONDS = data.get("MIN_TIME_LIMIT_SECONDS", 30)
    MAX_TIME_LIMIT_SECONDS = data.get("MAX_TIME_LIMIT_SECONDS", 300)
    MAX_HISTORY_LIMIT = data.get("MAX_HISTORY_LIMIT", 100)
    MAX_PURCHASE_CREDITS = data.get("MAX_PURCHASE_CREDITS", 10000)

    # New account defaults
    DEFAULT_CREDITS = data.get("DEFAULT_CREDITS", 100)
    DEFAULT_DAILY_FREE_QUESTIONS = data.get("DEFAULT_DAILY_FREE_QUESTIONS", 20)

    # Daily free question reset
    DAILY_RESET_ENABLED = bool(data.get("DAILY_RESET_ENABLED", True))
    DAILY_RESET_INTERVAL_SECONDS = data.get("DAILY_RESET_INTERVAL_SECONDS", 3600)
    DAILY_RESET_BATCH_SIZE = data.get("DAILY_RESET_BATCH_SIZE", 500)
    RESET_TIMEZONE = data.get("RESET_TIMEZONE", "UTC")

    # Payment collaborator
    PAYMENT_GATEWAY_URL = data.get("PAYMENT_GATEWAY_URL")  # None approves payments locally
    PAYMENT_GATEWAY_TIMEOUT = data.get("PAYMENT_GATEWAY_TIMEOUT", 10.0)

    # Accounts that play without credits (administrators)
    UNRESTRICTED_USER_IDS = data.get("UNRESTRICTED_USER_IDS", [])
