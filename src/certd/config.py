"""
配置加载模块：支持 .env、环境变量、工作目录 certd.settings.json（或 CERTD_SETTINGS_FILE 指定）多来源合并。
公开接口：
- Config: 读取配置的设置类
- get_config: 构造一个新的 Config 实例（服务在构造时读取一次），配置无效时抛出 ConfigParseError
- settings_file_path: 当前生效的 JSON 设置文件路径
内部方法：
- Config.settings_customise_sources: 自定义配置来源顺序
- Config.parse_cert_addrs: 将字符串/JSON 列表规范化为逗号分隔的主机列表
"""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any, Dict, Tuple

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict, PydanticBaseSettingsSource

from src.certd.ca.errors import ConfigParseError

DEFAULT_USER = "admin"
DEFAULT_PASSWORD = "password"
SETTINGS_FILE_NAME = "certd.settings.json"


def settings_file_path() -> Path:
    explicit = os.environ.get("CERTD_SETTINGS_FILE")
    return Path(explicit) if explicit else Path.cwd() / SETTINGS_FILE_NAME


class SettingsFileSource(PydanticBaseSettingsSource):
    """
    JSON 设置文件来源。文件不存在时不提供任何值；
    文件存在但不是 JSON 对象时抛出 ConfigParseError，而不是静默忽略。
    """

    def __init__(self, settings_cls: type[BaseSettings]):
        super().__init__(settings_cls)
        self.path = settings_file_path()
        self.values = self._read()

    def _read(self) -> Dict[str, Any]:
        if not self.path.is_file():
            return {}
        try:
            loaded = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ConfigParseError(f"设置文件 \"{self.path}\" 无法解析: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigParseError(f"设置文件 \"{self.path}\" 顶层必须是 JSON 对象")
        return loaded

    def get_field_value(self, field, field_name):  # type: ignore[override]
        return self.values.get(field_name), field_name, False

    def __call__(self) -> Dict[str, Any]:
        known = self.settings_cls.model_fields
        return {k: v for k, v in self.values.items() if k in known}


class Config(BaseSettings):
    # 环境变量：CERTD_USER / CERTD_PASS / CERTD_CONFIG / CERTD_LISTEN / CERTD_PORT / CERTD_CERT_ADDRS / LOG_LEVEL
    user: str = DEFAULT_USER
    password: str = Field(default=DEFAULT_PASSWORD, validation_alias=AliasChoices("CERTD_PASS"))
    ca_config: str = Field(default="", validation_alias=AliasChoices("CERTD_CONFIG"))
    listen: str = "localhost"
    port: int = 4443
    cert_addrs: str = ""
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL"))

    model_config = SettingsConfigDict(
        env_prefix="CERTD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("user", mode="before")
    @classmethod
    def default_user_when_empty(cls, value: Any) -> Any:
        """空值不覆盖默认用户名。"""
        return DEFAULT_USER if value in (None, "") else value

    @field_validator("password", mode="before")
    @classmethod
    def default_password_when_empty(cls, value: Any) -> Any:
        return DEFAULT_PASSWORD if value in (None, "") else value

    @field_validator("cert_addrs", mode="before")
    @classmethod
    def parse_cert_addrs(cls, value: Any) -> Any:
        """支持以 JSON 列表或分隔符（逗号/分号/空白）给出 cert_addrs，统一为逗号分隔。"""
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return ",".join(str(v) for v in value)
        if not isinstance(value, str):
            return value
        text = value.strip()
        if text.startswith("["):
            try:
                loaded = json.loads(text)
            except json.JSONDecodeError:
                loaded = None
            if isinstance(loaded, list):
                return ",".join(str(v) for v in loaded)
        return ",".join(p for p in re.split(r"[\s,;]+", text) if p)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """入参 > 环境变量 > .env > 设置文件 > secrets。"""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            SettingsFileSource(settings_cls),
            file_secret_settings,
        )


def get_config(**overrides: Any) -> Config:
    try:
        return Config(**overrides)
    except ValidationError as e:
        raise ConfigParseError(f"配置无效: {e.error_count()} 处错误\n{e}") from e
