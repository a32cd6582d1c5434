"""Application configuration.

Environment variables override all defaults. A `.env` file next to the
backend directory is loaded for local development.

CRITICAL: PROVIDER_USERNAME / PROVIDER_API_KEY sign every order placement.
They must be set in production - startup fails fast if they are missing.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

_BACKEND_DIR = Path(__file__).resolve().parents[2]
load_dotenv(dotenv_path=_BACKEND_DIR / ".env", override=False)


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = ENVIRONMENT == "development"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Order ledger (system of record)
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./orders.db")

    # Telegram bot (Must be set via .env, never in code)
    TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
    # Webhook mode: Telegram pushes updates to WEBHOOK_URL + TELEGRAM_WEBHOOK_PATH.
    # Otherwise the bot long-polls.
    USE_WEBHOOK: bool = _env_bool("USE_WEBHOOK")
    WEBHOOK_URL: str = os.getenv("WEBHOOK_URL", "").rstrip("/")
    TELEGRAM_WEBHOOK_PATH: str = os.getenv("TELEGRAM_WEBHOOK_PATH", "/tg-webhook")

    # BOS StoreID provider
    PROVIDER_API_URL: str = os.getenv("PROVIDER_API_URL", "https://apibosstoreid.online/api/v4")
    PROVIDER_USERNAME: str = os.getenv("PROVIDER_USERNAME", "")
    PROVIDER_API_KEY: str = os.getenv("PROVIDER_API_KEY", "")
    PROVIDER_TIMEOUT_SECONDS: float = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "15"))

    if not (PROVIDER_USERNAME and PROVIDER_API_KEY):
        if ENVIRONMENT == "production":
            raise ValueError(
                "⛔ CRITICAL: PROVIDER_USERNAME and PROVIDER_API_KEY must be set in production. "
                "Orders cannot be signed without them."
            )
        import warnings
        warnings.warn(
            "⚠️  PROVIDER_USERNAME / PROVIDER_API_KEY not set. "
            "Order placement will be rejected by the provider.",
            RuntimeWarning,
        )

    # Provider callbacks
    WEBHOOK_PATH: str = os.getenv("WEBHOOK_PATH", "/webhook/bos")
    # Empty secret disables callback signature verification
    WEBHOOK_SECRET: str = os.getenv("WEBHOOK_SECRET", "")
    WEBHOOK_SIGNATURE_HEADER: str = os.getenv("WEBHOOK_SIGNATURE_HEADER", "X-Callback-Signature")

    # Conversation sessions: "memory" (process lifetime) or "database"
    SESSION_BACKEND: str = os.getenv("SESSION_BACKEND", "memory").strip().lower()
    # Idle sessions older than this are discarded. 0 = never expire.
    SESSION_TTL_SECONDS: int = int(os.getenv("SESSION_TTL_SECONDS", "0"))

    # HTTP server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "3000"))


settings = Settings()
