from __future__ import annotations

import os
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field


class RemoteConfig(BaseModel):
    """Configuration for the remote submission service."""

    backend: Literal["inmemory", "http"] = "inmemory"
    base_url: str = "https://app.rapidpro.io"
    token: Optional[str] = None
    timeout: float = 30.0


class SurveyorConfig(BaseModel):
    """Top-level configuration model."""

    files_dir: str = "./surveyor-data"
    log_level: str = "INFO"
    remote: RemoteConfig = Field(default_factory=RemoteConfig)


def load_config(path: Optional[str] = None) -> SurveyorConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to SURVEYOR_CONFIG env
            variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("SURVEYOR_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = SurveyorConfig(**data)
    else:
        config = SurveyorConfig()

    env_files_dir = os.getenv("SURVEYOR_FILES_DIR")
    if env_files_dir:
        config.files_dir = env_files_dir
    env_token = os.getenv("SURVEYOR_API_TOKEN")
    if env_token:
        config.remote.token = env_token
    return config
