"""
Configuration management using Pydantic models loaded from YAML.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .domain.exceptions import ConfigError, InvalidTimeZone
from .domain.models import (
    DEFAULT_BUFFER_MINUTES,
    CalendarConnection,
    DelegationGrant,
    DelegationPermissions,
    Role,
    UserProfile,
    WorkingHoursRule,
)
from .domain.timezone import Weekday, resolve_zone

DEFAULT_CONFIG_FILENAME = "slotkeeper.yaml"


def _validate_zone(value: str) -> str:
    try:
        resolve_zone(value)
    except InvalidTimeZone as exc:
        raise ValueError(str(exc)) from exc
    return value


class DefaultsConfig(BaseModel):
    """Default settings for slot search and booking."""
    duration_minutes: int = 30
    buffer_minutes: int = DEFAULT_BUFFER_MINUTES
    provider_timeout_seconds: float = 10.0

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        """Ensure meeting duration is positive."""
        if value <= 0:
            raise ValueError("duration_minutes must be greater than zero")
        return value

    @field_validator("buffer_minutes")
    @classmethod
    def validate_buffer(cls, value: int) -> int:
        if value < 0:
            raise ValueError("buffer_minutes must not be negative")
        return value

    @field_validator("provider_timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("provider_timeout_seconds must be greater than zero")
        return value


class WindowConfig(BaseModel):
    start: str
    end: str


class WorkingHoursConfig(BaseModel):
    """Weekly template; weekdays left out have no working hours."""
    buffer_minutes: Optional[int] = None
    working_hours: Dict[Weekday, List[WindowConfig]] = Field(default_factory=dict)

    def to_rule(self, owner_id: str, timezone: str, default_buffer: int) -> WorkingHoursRule:
        return WorkingHoursRule.from_mapping(
            owner_id,
            timezone,
            {
                "buffer_minutes": default_buffer if self.buffer_minutes is None else self.buffer_minutes,
                "working_hours": {
                    day: [window.model_dump() for window in windows]
                    for day, windows in self.working_hours.items()
                },
            },
        )


class UserConfig(BaseModel):
    """A known user: owner, assistant, admin or attendee."""
    id: str
    name: str = ""
    email: str = ""
    timezone: str = "UTC"
    role: Role = Role.VP
    working_hours: Optional[WorkingHoursConfig] = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        return _validate_zone(value)

    def display_name(self) -> str:
        return self.name or self.id

    def to_profile(self) -> UserProfile:
        return UserProfile(id=self.id, timezone=self.timezone, role=self.role, name=self.name, email=self.email)


class PermissionsConfig(BaseModel):
    can_book: bool = True
    can_cancel: bool = True
    can_view: bool = True
    can_update: bool = False


class DelegationConfig(BaseModel):
    vp_owner: str
    delegate: str
    permissions: PermissionsConfig = Field(default_factory=PermissionsConfig)
    active: bool = True

    def to_grant(self) -> DelegationGrant:
        return DelegationGrant(
            vp_owner=self.vp_owner,
            delegate=self.delegate,
            permissions=DelegationPermissions(**self.permissions.model_dump()),
            active=self.active,
        )


class ConnectionConfig(BaseModel):
    """
    A linked external calendar. The token is read from ``credential`` or,
    preferably, from the environment variable named by ``credential_env``.
    """
    id: str
    user_id: str
    provider: str
    calendar_id: str = "primary"
    credential: str = ""
    credential_env: Optional[str] = None
    active: bool = True

    def resolve_credential(self) -> str:
        if self.credential_env:
            return os.environ.get(self.credential_env, "")
        return self.credential

    def to_connection(self) -> CalendarConnection:
        return CalendarConnection(
            id=self.id,
            user_id=self.user_id,
            provider=self.provider,
            credential=self.resolve_credential(),
            calendar_id=self.calendar_id,
            active=self.active,
        )


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "UTC"
    log_level: str = "INFO"
    database_path: Optional[Path] = None
    mock_calendar_file: Optional[Path] = None
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    users: List[UserConfig] = Field(default_factory=list)
    delegations: List[DelegationConfig] = Field(default_factory=list)
    connections: List[ConnectionConfig] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Reject zone identifiers pendulum cannot resolve."""
        return _validate_zone(value)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("users")
    @classmethod
    def validate_users(cls, value: List[UserConfig]) -> List[UserConfig]:
        """Ensure user ids are unique."""
        seen: set[str] = set()
        for user in value:
            if user.id in seen:
                raise ValueError(f"Duplicate user id detected: {user.id}")
            seen.add(user.id)
        return value

    @model_validator(mode="after")
    def validate_working_hours(self) -> "AppConfig":
        """Build every configured rule once so bad templates fail at load time."""
        self.initial_rules()
        return self

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            ConfigError: If the file is missing or its content is invalid
        """
        if not config_path.exists():
            raise ConfigError(
                f"Config file not found: {config_path}\n"
                f"Please create a {DEFAULT_CONFIG_FILENAME} file. "
                f"See {DEFAULT_CONFIG_FILENAME.replace('.yaml', '.example.yaml')} for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ConfigError("Config file must contain a mapping at the root level.")

        try:
            config = cls(**data)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration in {config_path}:\n{exc}") from exc

        # relative paths are relative to the config file
        base = config_path.parent
        if config.database_path is not None and not config.database_path.is_absolute():
            config.database_path = base / config.database_path
        if config.mock_calendar_file is not None and not config.mock_calendar_file.is_absolute():
            config.mock_calendar_file = base / config.mock_calendar_file

        return config

    def find_user(self, user_id: str) -> Optional[UserConfig]:
        for user in self.users:
            if user.id == user_id:
                return user
        return None

    def initial_rules(self) -> List[WorkingHoursRule]:
        return [
            user.working_hours.to_rule(user.id, user.timezone, self.defaults.buffer_minutes)
            for user in self.users
            if user.working_hours is not None
        ]


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look in the current directory first
    config_path = Path.cwd() / DEFAULT_CONFIG_FILENAME

    if not config_path.exists():
        # Try in the project root (parent of the package)
        config_path = Path(__file__).parent.parent / DEFAULT_CONFIG_FILENAME

    return config_path
