"""Configuration management for logsmith."""

from __future__ import annotations

from logsmith.config.loader import load_config
from logsmith.config.models import (
    BumpConfig,
    BumpType,
    ChangelogConfig,
    CommitParser,
    GitConfig,
    LinkParser,
    LogsmithConfig,
    RemoteConfig,
    RemoteSettings,
    TextProcessor,
)

__all__ = [
    "BumpConfig",
    "BumpType",
    "ChangelogConfig",
    "CommitParser",
    "GitConfig",
    "LinkParser",
    "LogsmithConfig",
    "RemoteConfig",
    "RemoteSettings",
    "TextProcessor",
    "load_config",
]
