"""zonepilot integration clients."""

from .tado_client import (
    TadoAuthenticationError,
    TadoClient,
    TadoClientError,
    TadoConnectionError,
    TadoNotFoundError,
    TadoServiceError,
)

__all__ = [
    "TadoAuthenticationError",
    "TadoClient",
    "TadoClientError",
    "TadoConnectionError",
    "TadoNotFoundError",
    "TadoServiceError",
]
