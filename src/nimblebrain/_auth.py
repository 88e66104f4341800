"""
API key resolution for the NimbleBrain facade.

``NimbleBrain(api_key=...)`` wins; without it the key comes from
``NIMBLEBRAIN_API_KEY``. The resolved key is sent as a bearer token by the
shared HTTP client used by every resource namespace.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

ENV_API_KEY = "NIMBLEBRAIN_API_KEY"
TEST_KEY_PREFIX = "nb_test_"


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


@dataclass(frozen=True, slots=True)
class AuthConfig:
    """Resolved NimbleBrain credentials. The key never appears in ``repr``."""

    api_key: str = field(repr=False)

    @property
    def is_test_key(self) -> bool:
        """True for sandbox keys (``nb_test_...``) as opposed to ``nb_live_...``."""
        return self.api_key.startswith(TEST_KEY_PREFIX)

    @staticmethod
    def from_env_or_value(api_key: str | None) -> AuthConfig:
        """
        Resolve the key passed to the facade, falling back to NIMBLEBRAIN_API_KEY.

        Blank values (empty or whitespace only) count as missing on both sides.

        Raises:
            ValueError: Neither source holds a key.
        """
        key = _clean(api_key) or _clean(os.getenv(ENV_API_KEY))
        if key is None:
            raise ValueError(
                f"API key missing. Pass api_key to NimbleBrain(...) or set {ENV_API_KEY}"
            )
        return AuthConfig(api_key=key)
