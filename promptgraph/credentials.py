"""Where the completion service API key comes from.

The job client only asks for the current key; storing it is someone
else's job (environment, a settings dialog, a secrets manager).
"""

import logging
import os
from typing import Optional, Protocol, runtime_checkable

from promptgraph.config import OPENAI_API_KEY_ENV

logger = logging.getLogger(__name__)


@runtime_checkable
class CredentialProvider(Protocol):
    def current(self) -> Optional[str]: ...


class EnvCredentialProvider:
    """Reads the key from the environment on every call."""

    def __init__(self, env_var: str = OPENAI_API_KEY_ENV):
        self.env_var = env_var

    def current(self) -> Optional[str]:
        return os.environ.get(self.env_var) or None


class StaticCredentialProvider:
    """Key held in memory and replaced at runtime."""

    def __init__(self, api_key: Optional[str] = None):
        self._api_key = api_key or None

    def set(self, api_key: Optional[str]) -> None:
        self._api_key = api_key or None
        logger.info("API key updated" if self._api_key else "API key cleared")

    def current(self) -> Optional[str]:
        return self._api_key
