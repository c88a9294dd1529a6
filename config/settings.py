# config/settings.py
import os
import sys
from dotenv import load_dotenv
from pydantic import ValidationError, Field
from pydantic_settings import BaseSettings
from util.enums import Environment
import logging


if os.getenv("APP_ENV", Environment.DEV) == Environment.DEV:
    load_dotenv()

_log = logging.getLogger("config.settings")


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(..., validation_alias="APP_ENV")
    REDIS_URL: str = Field(..., validation_alias="REDIS_URL")

    # CORS & Limits
    ALLOWED_ORIGIN: str = Field(..., validation_alias="ALLOWED_ORIGIN")
    RATE_LIMIT_TIMES: int = Field(..., validation_alias="RATE_LIMIT_TIMES")
    RATE_LIMIT_SECONDS: int = Field(..., validation_alias="RATE_LIMIT_SECONDS")
    TRUST_PROXY: bool = Field(default=False, validation_alias="TRUST_PROXY")

    # Provider credentials (absent key -> fallback outcome, never an error)
    OPENAI_API_KEY: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
    PERPLEXITY_API_KEY: str | None = Field(
        default=None, validation_alias="PERPLEXITY_API_KEY"
    )
    ANTHROPIC_API_KEY: str | None = Field(
        default=None, validation_alias="ANTHROPIC_API_KEY"
    )
    GOOGLE_GENERATIVE_AI_API_KEY: str | None = Field(
        default=None, validation_alias="GOOGLE_GENERATIVE_AI_API_KEY"
    )

    # Provider endpoints & models
    OPENAI_API_URL: str = "https://api.openai.com/v1/chat/completions"
    OPENAI_MODEL: str = Field(default="gpt-4o", validation_alias="OPENAI_MODEL")
    PERPLEXITY_API_URL: str = "https://api.perplexity.ai/chat/completions"
    PERPLEXITY_MODEL: str = Field(default="sonar", validation_alias="PERPLEXITY_MODEL")
    ANTHROPIC_API_URL: str = "https://api.anthropic.com/v1/messages"
    ANTHROPIC_MODEL: str = Field(
        default="claude-3-5-haiku-latest", validation_alias="ANTHROPIC_MODEL"
    )
    ANTHROPIC_VERSION: str = "2023-06-01"
    GEMINI_API_URL: str = (
        "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
    )
    GEMINI_MODEL: str = Field(default="gemini-1.5-flash", validation_alias="GEMINI_MODEL")

    # Audit engine
    ENGINE_TIMEOUT_SECONDS: float = Field(
        default=30.0, validation_alias="ENGINE_TIMEOUT_SECONDS"
    )
    FALLBACK_DELAY_SECONDS: float = Field(
        default=1.5, validation_alias="FALLBACK_DELAY_SECONDS"
    )
    DISPATCH_TIMEOUT_SECONDS: float = Field(
        default=45.0, validation_alias="DISPATCH_TIMEOUT_SECONDS"
    )
    VERIFY_COOLDOWN_SECONDS: int = 86400
    CLAIM_MATCH_PREFIX_CHARS: int = 20

    # Logging knobs
    LOGGER_NAME: str = "truth-audit"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(default="app.log", validation_alias="LOG_FILE_NAME")
    LOG_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_BACKUP_COUNT")

    # Prompts
    EVAL_SYSTEM_PROMPT: str = (
        "You are an AI accuracy auditor for restaurant and local business data.\n"
        "You will be given GROUND TRUTH about a business from a verified database.\n"
        "\n"
        "TASK:\n"
        "1. Think about what an AI assistant would say if a user asked about this business.\n"
        "2. Compare that knowledge against the GROUND TRUTH.\n"
        "3. Identify every specific inaccuracy an AI assistant might state.\n"
        "\n"
        "Return a JSON object with exactly these three fields:\n"
        '- "accuracy_score": integer 0-100 (100 = matches ground truth perfectly, 0 = entirely wrong)\n'
        '- "inaccuracies": array of strings, each stating ONE specific false claim (empty array if none)\n'
        '- "response_text": a realistic AI answer a user might receive about this business\n'
        "\n"
        "Return only valid JSON. No markdown, no code fences, no explanation outside the JSON object.\n"
    )


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    sys.exit(1)
except Exception as e:
    print(f"❌ Settings initialization failed: {e}", file=sys.stderr)
    sys.exit(1)
