import os
import logging
from pydantic import BaseModel, Field
from typing import Dict, List
from dotenv import load_dotenv

from feedback360.core.exceptions import ConfigurationError

load_dotenv()

DEFAULT_WEIGHTS = "PEER=1.0,MANAGER=1.0,SUBORDINATE=1.0"
DEFAULT_THRESHOLDS = "1.0,1.5,2.5,3.5"


def parse_weights(raw: str) -> Dict[str, float]:
    """
    Parse "TYPE=weight,TYPE=weight" into a dict.
    Reviewer types are upper-cased; weights must be non-negative.
    """
    weights = {}
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        if "=" not in part:
            raise ConfigurationError(f"Invalid weight entry '{part}', expected TYPE=weight")
        name, value = part.split("=", 1)
        try:
            weight = float(value)
        except ValueError:
            raise ConfigurationError(f"Weight for {name.strip()} is not a number: '{value}'")
        if weight < 0:
            raise ConfigurationError(f"Weight for {name.strip()} must be >= 0")
        weights[name.strip().upper()] = weight
    return weights


def parse_thresholds(raw: str) -> List[float]:
    try:
        bounds = [float(v) for v in raw.split(",") if v.strip()]
    except ValueError:
        raise ConfigurationError(f"Label thresholds must be numbers: '{raw}'")
    if len(bounds) != 4:
        raise ConfigurationError("Exactly four label thresholds are required")
    if any(lower >= upper for lower, upper in zip(bounds, bounds[1:])):
        raise ConfigurationError("Label thresholds must be strictly ascending")
    return bounds


class ScoringSettings(BaseModel):
    reviewer_weights: Dict[str, float] = Field(
        default_factory=lambda: parse_weights(os.getenv("SCORE_WEIGHTS", DEFAULT_WEIGHTS))
    )
    label_thresholds: List[float] = Field(
        default_factory=lambda: parse_thresholds(os.getenv("SCORE_LABEL_THRESHOLDS", DEFAULT_THRESHOLDS))
    )
    include_self: bool = Field(default=os.getenv("SCORE_INCLUDE_SELF", "false").lower() == "true")
    precision: int = int(os.getenv("SCORE_PRECISION", "4"))


class Config(BaseModel):
    app_name: str = "Feedback 360"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api/v1"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./feedback360.db")

    # Tokens are issued by the external auth service; we only verify them
    secret_key: str = os.getenv("SECRET_KEY", "dev-only-insecure-key-DO-NOT-USE-IN-PROD")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    access_token_expire_minutes: int = 60 * 24

    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"

    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
            if o.strip()
        ]
    )

    rate_limit_recalculate: str = os.getenv("RATE_LIMIT_RECALCULATE", "5/minute")

    scoring: ScoringSettings = Field(default_factory=ScoringSettings)


settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment not in ("development", "testing"):
    if "dev-only" in settings.secret_key:
        raise RuntimeError(
            "FATAL: SECRET_KEY must be set for non-development environments."
        )
elif "dev-only" in settings.secret_key:
    _logger.warning("Using insecure default SECRET_KEY - only acceptable in development.")
