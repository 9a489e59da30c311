# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Core configuration, all env-driven.
Single source of truth for every tunable parameter.
"""

import os


def _split_csv(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings:
    """Application settings loaded from environment variables."""

    SERVICE_NAME: str = os.getenv("SERVICE_NAME", "roster-service")
    SERVICE_VERSION: str = os.getenv("SERVICE_VERSION", "1.0.0")
    SERVICE_PORT: int = int(os.getenv("SERVICE_PORT", "8010"))

    # Chat platform (Discord REST)
    DISCORD_TOKEN: str = os.getenv("DISCORD_TOKEN", "")
    DISCORD_API_BASE: str = os.getenv("DISCORD_API_BASE", "https://discord.com/api/v10")
    CHAT_TIMEOUT: float = float(os.getenv("CHAT_TIMEOUT", "5.0"))
    FORMED_GROUPS_CHANNEL_ID: str = os.getenv("FORMED_GROUPS_CHANNEL_ID", "")

    # Tabular store (Google Sheets)
    SHEET_ID: str = os.getenv("SHEET_ID", "")
    GOOGLE_SERVICE_JSON: str = os.getenv("GOOGLE_SERVICE_JSON", "")
    SHEETS_API_BASE: str = os.getenv(
        "SHEETS_API_BASE", "https://sheets.googleapis.com/v4/spreadsheets"
    )
    SHEETS_TIMEOUT: float = float(os.getenv("SHEETS_TIMEOUT", "10.0"))
    SIGNUP_LOG_SHEET: str = os.getenv("SIGNUP_LOG_SHEET", "Signup Log")
    SIGNUP_LOG_RANGE: str = os.getenv("SIGNUP_LOG_RANGE", "Signup Log!A:F")
    SCHEDULE_SHEET: str = os.getenv("SCHEDULE_SHEET", "Run_Schedule")
    SCHEDULE_RANGE: str = os.getenv("SCHEDULE_RANGE", "Run_Schedule!A:Z")
    FORM_RESPONSES_RANGE: str = os.getenv("FORM_RESPONSES_RANGE", "Form Responses 1!A:G")
    FORM_RUN_ID_COLUMN: int = int(os.getenv("FORM_RUN_ID_COLUMN", "6"))

    # Signup rules
    OVERRIDE_USER_IDS: list[str] = _split_csv(os.getenv("OVERRIDE_USER_IDS", ""))
    NOTIFY_DEBOUNCE_SECONDS: float = float(os.getenv("NOTIFY_DEBOUNCE_SECONDS", "10"))

    # Announcement parsing
    DISPLAY_TIMEZONE: str = os.getenv("DISPLAY_TIMEZONE", "America/New_York")
    SOURCE_TIMEZONE: str = os.getenv("SOURCE_TIMEZONE", "UTC")
    TIME_DISPLAY_FORMAT: str = os.getenv("TIME_DISPLAY_FORMAT", "%a %b %d, %I:%M %p %Z")

    # Registry bounds
    MAX_ACTIVE_EVENTS: int = int(os.getenv("MAX_ACTIVE_EVENTS", "500"))
    EVENT_TTL_HOURS: float = float(os.getenv("EVENT_TTL_HOURS", "72"))

    DEFAULT_HISTORY_LIMIT: int = int(os.getenv("DEFAULT_HISTORY_LIMIT", "100"))
    MAX_HISTORY_SIZE: int = int(os.getenv("MAX_HISTORY_SIZE", "10000"))

    CORS_ORIGINS: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
