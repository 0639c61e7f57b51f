"""Configuration management with Pydantic Settings + optional YAML."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from springcrm.utils.paths import default_config_path, default_data_dir


class LLMConfig(BaseModel):
    """Upstream chat-completion endpoint. The API key is supplied per request, never here."""
    base_url: str = "https://api.moonshot.cn/v1"
    model: str = "moonshot-v1-32k"
    max_tokens: int = 2000
    temperature: float = 0.3
    timeout: float = 120.0
    search_tool_name: str = "$web_search"


class ServerConfig(BaseModel):
    bind: str = "0.0.0.0"
    port: int = 3000


class AuthConfig(BaseModel):
    jwt_secret: str = ""
    token_ttl_hours: int = 24 * 7
    admin_username: str = "admin"
    admin_password: str = "admin123"
    admin_name: str = "System Administrator"


class PromptConfig(BaseModel):
    company_name: str = "Sichuan Huayu Vehicle Leaf Spring Co., Ltd."
    sample_size: int = 10


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SPRINGCRM_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    llm: LLMConfig = Field(default_factory=LLMConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    prompt: PromptConfig = Field(default_factory=PromptConfig)
    data_dir: str = ""
    log_level: str = "INFO"
    log_json: bool = False

    def get_data_dir(self) -> Path:
        if self.data_dir:
            return Path(self.data_dir)
        return default_data_dir()


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from env vars, optionally overlaying a YAML config."""
    yaml_data: dict[str, Any] = {}

    # Determine config file path
    if config_path is None:
        config_path = os.environ.get("SPRINGCRM_CONFIG")
    if config_path is None:
        default = default_config_path()
        if default.exists():
            config_path = default

    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                yaml_data = yaml.safe_load(f) or {}

    # Keys present in the YAML file win over env vars; env vars fill the rest
    return Settings(**yaml_data)
