"""Pydantic configuration models for MongoDB write sinks."""

from __future__ import annotations

import re
from enum import StrEnum
from typing import Self

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

# MongoDB forbids these in database names; collection names may not contain "$"
_DB_NAME_FORBIDDEN = re.compile(r'[/\\. "$*<>:|?]')


class WriteMode(StrEnum):
    """Sink variant applied to every upstream payload."""

    INSERT_ONE = "insert_one"
    INSERT_MANY = "insert_many"
    UPDATE_ONE = "update_one"
    UPDATE_MANY = "update_many"
    DELETE_ONE = "delete_one"
    DELETE_MANY = "delete_many"


class MongoConfig(BaseModel):
    """Connection and target collection settings."""

    uri: str = "mongodb://localhost:27017"
    database: str
    collection: str
    username: str | None = None
    password: SecretStr | None = None
    auth_source: str = "admin"
    app_name: str = "mongo-sink"
    server_selection_timeout_ms: int = Field(default=5000, ge=1)

    @field_validator("uri")
    @classmethod
    def validate_scheme(cls, v: str) -> str:
        if not v.startswith(("mongodb://", "mongodb+srv://")):
            msg = f"uri '{v}' must start with 'mongodb://' or 'mongodb+srv://'"
            raise ValueError(msg)
        return v

    @field_validator("database")
    @classmethod
    def validate_database(cls, v: str) -> str:
        if not v or _DB_NAME_FORBIDDEN.search(v):
            msg = f"database '{v}' is not a valid MongoDB database name"
            raise ValueError(msg)
        return v

    @field_validator("collection")
    @classmethod
    def validate_collection(cls, v: str) -> str:
        if not v or "$" in v or v.startswith("system."):
            msg = f"collection '{v}' is not a valid MongoDB collection name"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def check_credentials(self) -> Self:
        """A password without a username is almost always a config mistake."""
        if self.password is not None and not self.username:
            msg = "username is required when password is set"
            raise ValueError(msg)
        return self


class RetryConfig(BaseModel):
    """Retry / backoff configuration for the caller-side client wrapper."""

    enabled: bool = False
    max_attempts: int = Field(default=5, ge=1)
    initial_wait_seconds: float = Field(default=1.0, gt=0)
    max_wait_seconds: float = Field(default=60.0, gt=0)
    multiplier: float = Field(default=2.0, ge=1.0)
    jitter: bool = True


class SinkConfig(BaseModel, extra="forbid"):
    """Configuration for a single write sink."""

    sink_id: str = "mongo"
    mode: WriteMode = WriteMode.INSERT_ONE
    ordered: bool = True
    batch_size: int = Field(default=100, ge=1)
    timeout_seconds: float | None = Field(default=None, gt=0)
    retry: RetryConfig = RetryConfig()
    mongo: MongoConfig
