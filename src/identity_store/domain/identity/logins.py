"""External login provider associations and their derived keys."""

from __future__ import annotations

from dataclasses import dataclass

_LOGIN_KEY_PREFIX = "login"
_LOGIN_KEY_SEPARATOR = "::"


@dataclass(frozen=True)
class UserLoginInfo:
    """External provider identity presented by a caller."""

    login_provider: str
    provider_key: str


@dataclass(frozen=True)
class UserLoginAssociation:
    """Stored record linking one provider identity to a local user id."""

    login_provider: str
    provider_key: str
    user_id: str


def login_key(*, login_provider: str, provider_key: str) -> str:
    """Return the composite document key for one provider identity."""

    provider = login_provider.strip()
    key = provider_key.strip()
    if not provider:
        raise ValueError("login provider cannot be blank")
    if not key:
        raise ValueError("provider key cannot be blank")
    return _LOGIN_KEY_SEPARATOR.join((_LOGIN_KEY_PREFIX, provider, key))
