"""
Token suppliers for the catalog clients.

The clients consume one collaborator: an object with a
``get_access_token()`` method returning a bearer token, either directly or
as an awaitable. How the token is obtained is up to the application.
"""

import os
import inspect
import logging
from typing import Awaitable, Optional, Protocol, Union, runtime_checkable

from ..errors import TokenAcquisitionError
from .constants import TOKEN_ENV_VARIABLE

logger = logging.getLogger(__name__)


@runtime_checkable
class TokenProvider(Protocol):
    """Supplies bearer tokens for the management API."""

    def get_access_token(self) -> Union[str, Awaitable[str]]:
        ...


class StaticTokenProvider:
    """Hands out a fixed token. Useful for scripts and tests."""

    def __init__(self, token: str):
        self._token = token

    def get_access_token(self) -> str:
        if not self._token:
            raise TokenAcquisitionError("No access token configured")
        return self._token


class EnvironmentTokenProvider:
    """Reads the token from an environment variable on every call."""

    def __init__(self, variable: str = TOKEN_ENV_VARIABLE):
        self.variable = variable

    def get_access_token(self) -> str:
        token = os.environ.get(self.variable, '').strip()
        if not token:
            raise TokenAcquisitionError(
                f"Environment variable {self.variable} is not set"
            )
        return token


async def acquire_token(token_provider: Optional[TokenProvider]) -> str:
    """
    Obtain a bearer token from the supplier.

    Args:
        token_provider: Sync or async token supplier

    Returns:
        Non-empty token string

    Raises:
        TokenAcquisitionError: If the supplier fails or returns nothing
    """
    if token_provider is None:
        raise TokenAcquisitionError("Token provider not initialized")

    try:
        token = token_provider.get_access_token()
        if inspect.isawaitable(token):
            token = await token
    except TokenAcquisitionError:
        raise
    except Exception as e:
        logger.error("Token acquisition failed: %s", e)
        raise TokenAcquisitionError(f"Failed to acquire access token: {e}") from e

    if not token or not isinstance(token, str):
        raise TokenAcquisitionError("Token provider returned an empty token")
    return token
