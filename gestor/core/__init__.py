"""Core module exports."""

from gestor.core.config import Settings, get_settings
from gestor.core.exceptions import (
    AppError,
    InternalError,
    InvalidArgumentError,
    LLMProviderError,
    NotFoundError,
    PermissionDeniedError,
    ResourceExhaustedError,
    UnauthenticatedError,
    UnimplementedError,
)
from gestor.core.logging import get_logger, setup_logging
from gestor.core.security import Identity, create_identity_token, decode_identity_token

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Logging
    "get_logger",
    "setup_logging",
    # Security
    "Identity",
    "create_identity_token",
    "decode_identity_token",
    # Exceptions
    "AppError",
    "InternalError",
    "InvalidArgumentError",
    "LLMProviderError",
    "NotFoundError",
    "PermissionDeniedError",
    "ResourceExhaustedError",
    "UnauthenticatedError",
    "UnimplementedError",
]
