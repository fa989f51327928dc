import os

from dotenv import load_dotenv

load_dotenv()

# Store address, e.g. sqlite:///./tasks.db
DATABASE_URL = os.getenv("DATABASE_URL")

ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
AI_MODEL = os.getenv("AI_MODEL", "claude-sonnet-4-5")

_cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000")
CORS_ORIGINS = [origin.strip() for origin in _cors_origins.split(",") if origin.strip()]

# Report malformed bodies and invalid fields as 400 instead of the route's 500
STRICT_VALIDATION = os.getenv("STRICT_VALIDATION", "false").lower() in ("1", "true", "yes")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def api_key_configured(api_key: str | None) -> bool:
    """True for a real key; the .env template placeholder counts as unset."""
    return bool(api_key) and api_key != "your-api-key-here"


class ConfigurationError(RuntimeError):
    """A setting a feature depends on is missing or unusable."""
