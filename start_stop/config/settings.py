"""
Configuration system using Pydantic for type-safe settings management.

The host passes the plugin settings and the environment secrets with every
request. ``decode_inputs`` validates both and turns pydantic errors into a
``ConfigurationError`` whose ``errors`` list is returned to the host as-is.
"""

from __future__ import annotations

import math
import os
import re
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict

from start_stop.enums import CommandName
from start_stop.exceptions import ConfigurationError
from start_stop.utils.durations import parse_duration

DEFAULT_EMPTY_WALLET_TEXT = "Please set your wallet address with the /wallet command first and try again."


def _default_max_concurrent_tasks() -> dict[str, int | float]:
    return {"admin": math.inf, "member": 10, "contributor": 2}


class StartStopSettings(BaseModel):
    """Plugin settings as configured by the repository or organization.

    Field names are snake_case in Python and camelCase on the wire.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    review_delay_tolerance: str = Field(
        default="1 Day",
        description="Age after which an unreviewed pull request no longer counts against the task limit",
    )
    task_stale_timeout_duration: str = Field(
        default="30 Days",
        description="Issues older than this get a warning in the assignment comment",
    )
    start_requires_wallet: bool = Field(default=True, description="Whether /start requires a registered wallet")
    max_concurrent_tasks: dict[str, int | float] = Field(
        default_factory=_default_max_concurrent_tasks,
        description="Maximum number of open assignments per role",
    )
    empty_wallet_text: str = Field(
        default=DEFAULT_EMPTY_WALLET_TEXT,
        description="Comment posted when a wallet is required but missing",
    )
    roles_with_review_authority: list[str] = Field(
        default=["COLLABORATOR", "OWNER", "MEMBER"],
        description="Author associations whose approvals free a task slot",
    )
    disabled_commands: list[CommandName] = Field(
        default_factory=list,
        description="Commands that are turned off for the repository",
    )

    @field_validator("review_delay_tolerance", "task_stale_timeout_duration")
    @classmethod
    def validate_duration(cls, value: str) -> str:
        parse_duration(value)
        return value

    @field_validator("max_concurrent_tasks")
    @classmethod
    def validate_limits(cls, value: dict[str, int | float]) -> dict[str, int | float]:
        if not value:
            raise ValueError("at least one role limit is required")
        for role, limit in value.items():
            if limit < 0:
                raise ValueError(f"limit for role {role!r} must not be negative")
            if isinstance(limit, float) and not math.isinf(limit) and not limit.is_integer():
                raise ValueError(f"limit for role {role!r} must be a whole number")
        return {role.lower(): limit for role, limit in value.items()}

    @field_validator("roles_with_review_authority")
    @classmethod
    def uppercase_roles(cls, value: list[str]) -> list[str]:
        return [role.upper() for role in value]

    @field_serializer("roles_with_review_authority")
    def serialize_roles(self, value: list[str]) -> list[str]:
        return [role.upper() for role in value]

    @property
    def review_delay(self) -> timedelta:
        """``review_delay_tolerance`` as a timedelta."""
        return parse_duration(self.review_delay_tolerance)

    @property
    def stale_after(self) -> timedelta:
        """``task_stale_timeout_duration`` as a timedelta."""
        return parse_duration(self.task_stale_timeout_duration)

    def is_command_enabled(self, command: CommandName | str) -> bool:
        return CommandName(command) not in self.disabled_commands

    @classmethod
    def from_yaml(cls, config_path: str) -> StartStopSettings:
        """Load settings from a YAML file with environment variable interpolation.

        Supports ``${VAR_NAME}`` and ``${VAR_NAME:-default}`` placeholders.

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file) as f:
                yaml_content = f.read()
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file: {config_path}") from e

        try:
            yaml_content = _interpolate_env_vars(yaml_content)
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment variable reference in config: {e}") from e

        try:
            config_dict = yaml.safe_load(yaml_content) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {config_path}: {e}") from e
        if not isinstance(config_dict, dict):
            raise ConfigurationError("Configuration must be a YAML object, not a list or scalar")

        return decode_settings(config_dict)


class PluginEnv(BaseSettings):
    """Environment secrets.

    Read from process environment variables; values sent by the host in the
    request ``env`` object take precedence.
    """

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore", populate_by_name=True)

    supabase_url: str = Field(validation_alias=AliasChoices("SUPABASE_URL", "supabase_url"))
    supabase_key: str = Field(validation_alias=AliasChoices("SUPABASE_KEY", "supabase_key"))
    github_api_url: str = Field(
        default="https://api.github.com",
        validation_alias=AliasChoices("GITHUB_API_URL", "github_api_url"),
    )
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "log_level"))


class PluginInputs(BaseModel):
    """Body of the request the host sends for every event."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    state_id: str = ""
    event_name: str
    event_payload: dict[str, Any]
    settings: dict[str, Any] = Field(default_factory=dict)
    auth_token: str = ""
    ref: str = ""
    env: dict[str, Any] = Field(default_factory=dict)


def format_validation_errors(error: ValidationError) -> list[dict[str, str]]:
    """Flatten pydantic errors into ``{"path", "message", "type"}`` records."""
    return [
        {
            "path": "/" + "/".join(str(part) for part in detail["loc"]),
            "message": detail["msg"],
            "type": detail["type"],
        }
        for detail in error.errors(include_url=False, include_context=False, include_input=False)
    ]


def decode_settings(raw: dict[str, Any] | None) -> StartStopSettings:
    """Validate raw settings, applying defaults.

    Raises:
        ConfigurationError: With the per-field errors when validation fails
    """
    try:
        return StartStopSettings.model_validate(raw or {})
    except ValidationError as e:
        raise ConfigurationError("Invalid plugin settings", errors=format_validation_errors(e)) from e


def decode_env(raw: dict[str, Any] | None) -> PluginEnv:
    """Validate environment secrets, request values over process variables.

    Raises:
        ConfigurationError: With the per-field errors when validation fails
    """
    try:
        return PluginEnv(**(raw or {}))
    except ValidationError as e:
        raise ConfigurationError("Invalid environment", errors=format_validation_errors(e)) from e


def decode_inputs(
    settings: dict[str, Any] | None, env: dict[str, Any] | None
) -> tuple[StartStopSettings, PluginEnv]:
    """Validate settings and environment together.

    Errors of both are collected before raising so the host sees every
    problem at once.
    """
    errors: list[dict[str, str]] = []
    decoded_settings = decoded_env = None
    try:
        decoded_settings = decode_settings(settings)
    except ConfigurationError as e:
        errors.extend(e.errors)
    try:
        decoded_env = decode_env(env)
    except ConfigurationError as e:
        errors.extend(e.errors)

    if errors or decoded_settings is None or decoded_env is None:
        raise ConfigurationError("Bad Request: invalid configuration.", errors=errors)
    return decoded_settings, decoded_env


def _interpolate_env_vars(content: str) -> str:
    """Interpolate ``${VAR_NAME}`` placeholders with environment variables.

    YAML comment lines are left unchanged.

    Raises:
        ValueError: If a required environment variable is not set
    """
    pattern = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")

    def replace_var(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default_value = match.group(2)
        value = os.getenv(var_name)

        if value is not None:
            return value
        elif default_value is not None:
            return default_value
        else:
            raise ValueError(f"Environment variable {var_name} is not set")

    def process_line(line: str) -> str:
        if line.lstrip().startswith("#"):
            return line
        return pattern.sub(replace_var, line)

    return "\n".join(process_line(line) for line in content.split("\n"))
