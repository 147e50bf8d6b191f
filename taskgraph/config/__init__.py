"""
Configuration management for TaskGraph.
"""

from .settings import AppConfig, OAuthConfig, SyncSettings, ServerConfig, LogLevel
from .environment import EnvironmentLoader
from .validation import ConfigValidator

__all__ = [
    'AppConfig',
    'OAuthConfig',
    'SyncSettings',
    'ServerConfig',
    'LogLevel',
    'EnvironmentLoader',
    'ConfigValidator',
]
