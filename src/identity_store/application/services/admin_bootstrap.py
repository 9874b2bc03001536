"""Bootstrap helper for creating an initial admin account at startup."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Protocol

from identity_store.application.ports.role_store_port import RoleStorePort
from identity_store.application.ports.user_store_ports import (
    UserEmailStorePort,
    UserRoleStorePort,
)
from identity_store.application.services.identity_service import (
    DuplicateUserError,
    IdentityService,
)
from identity_store.application.store_errors import StoreError
from identity_store.domain.identity.credentials import (
    normalize_user_email,
    normalize_user_password,
)
from identity_store.domain.identity.role import IdentityRole
from identity_store.domain.store_status import ResponseStatus

ADMIN_ROLE_NAME = "admin"

logger = logging.getLogger(__name__)


class AdminBootstrapConfigError(ValueError):
    """Raised when bootstrap-admin environment configuration is invalid."""


@dataclass(frozen=True)
class AdminBootstrapConfig:
    """Runtime configuration for one-time admin bootstrap."""

    email: str
    password: str


class AdminBootstrapOutcome(StrEnum):
    """Outcome states for initial admin bootstrap execution."""

    CREATED = "created"
    SKIPPED_USER_PRESENT = "skipped_user_present"
    SKIPPED_CONCURRENT_INSERT = "skipped_concurrent_insert"


@dataclass(frozen=True)
class AdminBootstrapResult:
    """Result model for one initial-admin bootstrap attempt."""

    outcome: AdminBootstrapOutcome
    email: str


class AdminUserStorePort(UserEmailStorePort, UserRoleStorePort, Protocol):
    """User capabilities needed to provision the admin account."""


def resolve_admin_bootstrap_config(
    *,
    email: str | None,
    password: str | None,
    password_file: str | None,
) -> AdminBootstrapConfig | None:
    """Resolve bootstrap-admin config from env values or return None when disabled."""

    any_value_set = any(value is not None for value in (email, password, password_file))
    if email is None:
        if any_value_set:
            raise AdminBootstrapConfigError(
                "BOOTSTRAP_ADMIN_EMAIL is required when bootstrap-admin variables are set"
            )
        return None

    if password is not None and password_file is not None:
        raise AdminBootstrapConfigError(
            "set only one of BOOTSTRAP_ADMIN_PASSWORD or BOOTSTRAP_ADMIN_PASSWORD_FILE"
        )

    resolved_password: str | None = None
    if password_file is not None:
        try:
            resolved_password = Path(password_file).read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise AdminBootstrapConfigError(
                "failed to read BOOTSTRAP_ADMIN_PASSWORD_FILE"
            ) from exc
    elif password is not None:
        resolved_password = password

    if resolved_password is None:
        raise AdminBootstrapConfigError(
            "set BOOTSTRAP_ADMIN_PASSWORD or BOOTSTRAP_ADMIN_PASSWORD_FILE "
            "when BOOTSTRAP_ADMIN_EMAIL is set"
        )

    try:
        normalized_email = normalize_user_email(email=email)
    except ValueError as exc:
        raise AdminBootstrapConfigError(f"BOOTSTRAP_ADMIN_EMAIL is invalid: {exc}") from exc
    try:
        normalized_password = normalize_user_password(password=resolved_password)
    except ValueError as exc:
        raise AdminBootstrapConfigError("bootstrap admin password cannot be blank") from exc

    return AdminBootstrapConfig(email=normalized_email, password=normalized_password)


async def ensure_initial_admin_user(
    *,
    identity: IdentityService,
    users: AdminUserStorePort,
    roles: RoleStorePort,
    config: AdminBootstrapConfig,
) -> AdminBootstrapResult:
    """Create the `admin` role and an admin user whose username is its email."""

    if await users.find_by_email(config.email) is not None:
        return AdminBootstrapResult(
            outcome=AdminBootstrapOutcome.SKIPPED_USER_PRESENT,
            email=config.email,
        )

    await _ensure_admin_role(roles)

    try:
        user = await identity.register_user(
            username=config.email,
            email=config.email,
            password=config.password,
        )
    except DuplicateUserError:
        return AdminBootstrapResult(
            outcome=AdminBootstrapOutcome.SKIPPED_USER_PRESENT,
            email=config.email,
        )
    except StoreError as error:
        if error.status is not ResponseStatus.KEY_EXISTS:
            raise
        return AdminBootstrapResult(
            outcome=AdminBootstrapOutcome.SKIPPED_CONCURRENT_INSERT,
            email=config.email,
        )

    await users.add_to_role(user, ADMIN_ROLE_NAME)
    # Persists the role assignment along with the flag.
    await users.set_email_confirmed(user, True)
    logger.info("admin_bootstrap_created user_id=%s", user.id)
    return AdminBootstrapResult(outcome=AdminBootstrapOutcome.CREATED, email=config.email)


async def _ensure_admin_role(roles: RoleStorePort) -> None:
    try:
        await roles.find_by_name(ADMIN_ROLE_NAME)
    except StoreError as error:
        if error.status is not ResponseStatus.KEY_NOT_FOUND:
            raise
        await roles.create(IdentityRole(name=ADMIN_ROLE_NAME))
