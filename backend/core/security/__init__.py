"""
Security utilities for authentication and authorization.
"""

from .microsoft import (
    MicrosoftAuthConfigError,
    MicrosoftIdentity,
    MicrosoftTokenValidator,
)

__all__ = [
    "MicrosoftAuthConfigError",
    "MicrosoftIdentity",
    "MicrosoftTokenValidator",
]
