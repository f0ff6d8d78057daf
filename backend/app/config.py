"""Configuration classes for the Flask app factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name])
"""

import os

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))


class Config:
    """Base configuration shared across all environments."""

    DEBUG = False
    TESTING = False

    # Which adapter builds the snapshot: default, organisation or fake
    CYCLE_DATA_SOURCE = os.getenv("CYCLE_DATA_SOURCE", "default")

    # Jira connection
    JIRA_HOST = os.getenv("JIRA_HOST", "")
    JIRA_EMAIL = os.getenv("JIRA_EMAIL", "")
    JIRA_TOKEN = os.getenv("JIRA_TOKEN", "")
    JIRA_BOARD_ID = os.getenv("JIRA_BOARD_ID", "")
    JIRA_PROJECT_KEY = os.getenv("JIRA_PROJECT_KEY", "")
    JIRA_EFFORT_FIELD = os.getenv("JIRA_EFFORT_FIELD", "")
    JIRA_SPRINT_FIELDS = os.getenv("JIRA_SPRINT_FIELDS", "")

    # Organisation policy (areas, teams, status tables, defaults)
    ORGANISATION_CONFIG = os.getenv(
        "ORGANISATION_CONFIG", os.path.join(basedir, "config", "organisation.json")
    )

    FAKE_DATA_SEED = os.getenv("FAKE_DATA_SEED", "")

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173")


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    # Fake data unless a source is chosen explicitly
    CYCLE_DATA_SOURCE = os.getenv("CYCLE_DATA_SOURCE", "fake")


class TestingConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    CYCLE_DATA_SOURCE = "fake"
    FAKE_DATA_SEED = "42"
    ORGANISATION_CONFIG = ""


class ProductionConfig(Config):
    """Production environment configuration."""

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")  # Must be set explicitly in production


# Configuration mapping: environment name -> config class
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
