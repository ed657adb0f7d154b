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
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./skillswap.db")
    API_PREFIX = data.get("API_PREFIX", "/api")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    API_RELOAD = bool(data.get("API_RELOAD", False))
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    CREATE_TABLES_ON_STARTUP = bool(data.get("CREATE_TABLES_ON_STARTUP", True))

    # Platform fee account, provisioned once at startup
    PLATFORM_ACCOUNT_USERNAME = data.get("PLATFORM_ACCOUNT_USERNAME", "platform")

    # Credit economy
    PLATFORM_FEE_PERCENT = data.get("PLATFORM_FEE_PERCENT", 2)
    MIN_CASHOUT_CREDITS = data.get("MIN_CASHOUT_CREDITS", 100)
    CASHOUT_FEE_PERCENT = data.get("CASHOUT_FEE_PERCENT", 5)
    CREDIT_TO_FIAT_RATE = data.get("CREDIT_TO_FIAT_RATE", "0.01")  # $ per credit
    ONBOARDING_BONUS = data.get("ONBOARDING_BONUS", 50)
    SETTLEMENT_MAX_RETRIES = data.get("SETTLEMENT_MAX_RETRIES", 3)

    # Performance points
    MAX_POINTS_PER_AWARD = data.get("MAX_POINTS_PER_AWARD", 1000)
    COMPLETION_POINTS = data.get(
        "COMPLETION_POINTS", {"beginner": 50, "intermediate": 75, "advanced": 100}
    )

    # Leaderboard and badge jobs
    WEEKLY_TOP_COUNT = data.get("WEEKLY_TOP_COUNT", 5)
    MONTHLY_TOP_COUNT = data.get("MONTHLY_TOP_COUNT", 5)
    ALLTIME_TOP_COUNT = data.get("ALLTIME_TOP_COUNT", 10)
    INACTIVITY_THRESHOLD_WEEKS = data.get("INACTIVITY_THRESHOLD_WEEKS", 6)
    WEEKLY_PROMOTION_ENABLED = bool(data.get("WEEKLY_PROMOTION_ENABLED", True))
    MONTHLY_DECAY_ENABLED = bool(data.get("MONTHLY_DECAY_ENABLED", True))
    BADGE_NOTIFICATION_WEBHOOK = data.get("BADGE_NOTIFICATION_WEBHOOK", None)

    # Ledger reconciliation
    RECONCILIATION_ENABLED = bool(data.get("RECONCILIATION_ENABLED", True))
    RECONCILIATION_INTERVAL_SECONDS = data.get("RECONCILIATION_INTERVAL_SECONDS", 86400)  # Daily
