"""
Settings dependencies shared by the routes and the client factories.
"""

from fastapi import Depends

from app.core.config import AppSettings, SlackSettings, get_settings


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning the process-wide settings."""
    return get_settings()


def get_slack_settings() -> SlackSettings:
    return get_settings().slack


SettingsDependency = Depends(get_app_settings)

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_slack_settings",
]
