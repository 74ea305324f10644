"""Infrastructure configuration error types."""

from __future__ import annotations

from enum import StrEnum
from typing import Self


class ErrorCode(StrEnum):
    """Standardized configuration error codes."""

    MISSING_SECRET = "MISSING_SECRET"
    UNKNOWN_VARIANT = "UNKNOWN_VARIANT"
    INVALID_SCHEDULE = "INVALID_SCHEDULE"
    INVALID_NAME = "INVALID_NAME"
    INVALID_QUEUE_SETTINGS = "INVALID_QUEUE_SETTINGS"
    INVALID_ARTIFACT = "INVALID_ARTIFACT"


class InfraConfigError(Exception):
    """Raised while building the resource graph, before anything is deployed."""

    def __init__(self, code: ErrorCode, message: str) -> None:
        """Initialize configuration error.

        Args:
            code: Standardized error code.
            message: Human-readable error message.
        """
        super().__init__(message)
        self.code = code
        self.message = message

    def is_code(self, code: ErrorCode) -> bool:
        """Check if this error matches a specific code."""
        return self.code == code

    @classmethod
    def missing_secret(cls, key: str, env_name: str) -> Self:
        """Create missing secret error."""
        return cls(
            ErrorCode.MISSING_SECRET,
            f"Missing required secret: {key}\n"
            f"Set it with `pulumi config set --secret {key} <value>` "
            f"or export {env_name} (see infra/.env.example).",
        )

    @classmethod
    def unknown_variant(cls, variant: str, known: list[str]) -> Self:
        """Create unknown deployment variant error."""
        return cls(
            ErrorCode.UNKNOWN_VARIANT,
            f"Unknown variant '{variant}'. Expected one of: {', '.join(sorted(known))}",
        )

    @classmethod
    def invalid_schedule(cls, expression: str) -> Self:
        """Create invalid schedule expression error."""
        return cls(
            ErrorCode.INVALID_SCHEDULE,
            f"Invalid schedule expression: {expression!r}",
        )

    @classmethod
    def invalid_name(cls, kind: str, name: str, rule: str) -> Self:
        """Create invalid resource name error."""
        return cls(
            ErrorCode.INVALID_NAME,
            f"Invalid {kind} name {name!r}: {rule}",
        )

    @classmethod
    def invalid_queue_settings(cls, details: str) -> Self:
        """Create invalid queue settings error."""
        return cls(ErrorCode.INVALID_QUEUE_SETTINGS, f"Invalid queue settings: {details}")

    @classmethod
    def invalid_artifact(cls, name: str) -> Self:
        """Create invalid deployment artifact error."""
        return cls(
            ErrorCode.INVALID_ARTIFACT,
            f"Lambda {name} needs exactly one of code_path or image_uri",
        )
