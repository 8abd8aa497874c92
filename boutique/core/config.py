import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int, min_value: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        value = default
    else:
        try:
            value = int(raw)
        except ValueError:
            value = default
    if min_value is not None:
        return max(min_value, value)
    return value


@dataclass(frozen=True)
class Settings:
    app_name: str
    secret_key: str
    algorithm: str
    access_token_expire_minutes: int
    issuer: str
    cors_origins: tuple[str, ...]
    database_url: str
    sql_echo: bool
    business_timezone: str
    currency: str
    default_alert_threshold: int
    activity_page_size: int
    activity_export_limit: int
    log_level: str
    log_file: str
    host: str
    port: int


settings = Settings(
    app_name=os.getenv("APP_NAME", "Makiti Boutique API"),
    secret_key=os.getenv("SECRET_KEY", "CHANGE_ME_IN_PRODUCTION_32_CHAR_MIN_SECRET_KEY"),
    algorithm=os.getenv("ALGORITHM", "HS256"),
    access_token_expire_minutes=_env_int("ACCESS_TOKEN_EXPIRE_MINUTES", 12 * 60, min_value=1),
    issuer=os.getenv("TOKEN_ISSUER", "boutique-api"),
    cors_origins=tuple(
        origin.strip().rstrip("/")
        for origin in os.getenv("CORS_ORIGINS", "*").split(",")
        if origin.strip()
    ),
    database_url=os.getenv("DATABASE_URL", "sqlite:///./boutique.db"),
    sql_echo=_env_bool("SQL_ECHO", False),
    business_timezone=os.getenv("BUSINESS_TIMEZONE", "Africa/Conakry"),
    currency=os.getenv("CURRENCY", "GNF"),
    default_alert_threshold=_env_int("DEFAULT_ALERT_THRESHOLD", 5, min_value=0),
    activity_page_size=_env_int("ACTIVITY_PAGE_SIZE", 50, min_value=1),
    activity_export_limit=_env_int("ACTIVITY_EXPORT_LIMIT", 10000, min_value=1),
    log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    log_file=os.getenv("LOG_FILE", ""),
    host=os.getenv("HOST", "0.0.0.0"),
    port=_env_int("PORT", 8000, min_value=1),
)
