"""Normalization helpers for identity credential inputs."""

from __future__ import annotations


def normalize_user_email(*, email: str) -> str:
    """Normalize one email address used as a mirror key."""

    normalized = email.strip().lower()
    if not normalized:
        raise ValueError("email cannot be blank")
    if "@" not in normalized:
        raise ValueError("email must contain '@'")
    return normalized


def normalize_username(*, username: str) -> str:
    """Strip one username; usernames keep their case."""

    normalized = username.strip()
    if not normalized:
        raise ValueError("username cannot be blank")
    return normalized


def normalize_user_password(*, password: str) -> str:
    """Reject blank plaintext passwords."""

    normalized = password.strip()
    if not normalized:
        raise ValueError("password cannot be blank")
    return normalized
