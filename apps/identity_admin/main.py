"""identity-admin entrypoint: store wiring and initial admin provisioning."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta

from identity_store.application.ports.document_bucket_port import DocumentBucketPort
from identity_store.application.services.admin_bootstrap import (
    AdminBootstrapResult,
    ensure_initial_admin_user,
    resolve_admin_bootstrap_config,
)
from identity_store.application.services.identity_service import IdentityService, LockoutPolicy
from identity_store.config.settings import Settings, load_settings
from identity_store.infrastructure.db.document_bucket import SqlAlchemyDocumentBucket
from identity_store.infrastructure.db.session import create_session_factory
from identity_store.infrastructure.logging import configure_logging
from identity_store.infrastructure.security.password_hasher import BcryptPasswordHasher
from identity_store.infrastructure.store.role_store import DocumentRoleStore
from identity_store.infrastructure.store.throwable_bucket import ThrowableBucket
from identity_store.infrastructure.store.user_store import DocumentUserStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityStores:
    """Stores and services sharing one document bucket."""

    bucket: ThrowableBucket
    users: DocumentUserStore
    roles: DocumentRoleStore
    identity: IdentityService


def build_identity_stores(
    settings: Settings,
    *,
    bucket: DocumentBucketPort | None = None,
) -> IdentityStores:
    """Build user/role stores over the configured document bucket."""

    if bucket is None:
        bucket = SqlAlchemyDocumentBucket(
            create_session_factory(settings.database_url),
            bucket_name=settings.document_bucket_name,
        )
    throwable = ThrowableBucket(bucket)
    users = DocumentUserStore(throwable)
    identity = IdentityService(
        users=users,
        password_hasher=BcryptPasswordHasher(rounds=settings.bcrypt_rounds),
        lockout_policy=LockoutPolicy(
            max_failed_access_attempts=settings.lockout_max_failed_access_attempts,
            lockout_duration=timedelta(seconds=settings.lockout_duration_seconds),
        ),
    )
    return IdentityStores(
        bucket=throwable,
        users=users,
        roles=DocumentRoleStore(throwable),
        identity=identity,
    )


async def run_admin_bootstrap(
    settings: Settings,
    *,
    stores: IdentityStores | None = None,
) -> AdminBootstrapResult | None:
    """Provision the initial admin when bootstrap variables are configured."""

    config = resolve_admin_bootstrap_config(
        email=settings.bootstrap_admin_email,
        password=settings.bootstrap_admin_password,
        password_file=settings.bootstrap_admin_password_file,
    )
    if config is None:
        logger.info("admin_bootstrap_disabled")
        return None

    resolved = stores or build_identity_stores(settings)
    result = await ensure_initial_admin_user(
        identity=resolved.identity,
        users=resolved.users,
        roles=resolved.roles,
        config=config,
    )
    logger.info("admin_bootstrap_result outcome=%s email=%s", result.outcome.value, result.email)
    return result


def main() -> None:
    """Run identity-admin one-shot provisioning."""

    settings = load_settings()
    configure_logging(level=settings.log_level)
    asyncio.run(run_admin_bootstrap(settings))


if __name__ == "__main__":
    main()
