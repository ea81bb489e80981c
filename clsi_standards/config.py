"""Configuration management for CLSI breakpoint interpretation."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Project paths
PACKAGE_ROOT = Path(__file__).parent  # clsi_standards/
PROJECT_ROOT = PACKAGE_ROOT.parent

# Load environment variables from .env file
env_path = PROJECT_ROOT / ".env"
if env_path.exists():
    load_dotenv(env_path)
else:
    # Fall back to template for defaults
    template_path = PROJECT_ROOT / ".env.template"
    if template_path.exists():
        load_dotenv(template_path)


def _split_list(value: str) -> list[str]:
    return [v.strip().lower() for v in value.split(",") if v.strip()]


class Config:
    """Application configuration."""

    # Storage
    DB_PATH: str = os.getenv("CLSI_DB_PATH", "~/.clsi/standards.db")

    # Source document recorded on seeded / imported standards
    DEFAULT_STANDARD_SOURCE: str = os.getenv("DEFAULT_STANDARD_SOURCE", "CLSI M100-S34")

    # --- Expert rule policy ---
    # Rule types that force a RESISTANT final result when triggered
    OVERRIDE_RULE_TYPES: list[str] = _split_list(
        os.getenv("OVERRIDE_RULE_TYPES", "intrinsic_resistance")
    )
    # Rule types that send the result to manual review when triggered
    REVIEW_RULE_TYPES: list[str] = _split_list(
        os.getenv(
            "REVIEW_RULE_TYPES",
            "quality_control,phenotype_confirmation,exceptional_phenotype",
        )
    )
    # Relative distance from a numeric threshold for a "clear" rule match
    RULE_CLEAR_MARGIN: float = float(os.getenv("RULE_CLEAR_MARGIN", "0.1"))

    # --- API ---
    API_KEY: str = os.getenv("CLSI_API_KEY", "")
    FLASK_SECRET_KEY: str = os.getenv("FLASK_SECRET_KEY", "dev-secret-change-in-production")

    # --- Logging ---
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def get_db_path(cls) -> str:
        """Get the expanded database path."""
        return os.path.expanduser(cls.DB_PATH)


config = Config()
