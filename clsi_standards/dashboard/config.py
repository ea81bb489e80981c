"""API server configuration."""

import os

from ..config import Config as StandardsConfig


class Config:
    """Base configuration."""

    # Flask
    SECRET_KEY = StandardsConfig.FLASK_SECRET_KEY
    DEBUG = os.environ.get("FLASK_DEBUG", "false").lower() == "true"

    # API key for /api routes; empty disables the check (dev mode)
    CLSI_API_KEY = StandardsConfig.API_KEY

    # Standards database
    CLSI_DB_PATH = StandardsConfig.get_db_path()


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    CLSI_API_KEY = ""


def get_config():
    """Get configuration based on environment."""
    env = os.environ.get("FLASK_ENV", "development")
    if env == "production":
        return ProductionConfig()
    if env == "testing":
        return TestingConfig()
    return DevelopmentConfig()
