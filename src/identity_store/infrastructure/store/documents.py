"""JSON document codec for identity records."""

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter

from identity_store.domain.identity.logins import UserLoginAssociation
from identity_store.domain.identity.role import IdentityRole
from identity_store.domain.identity.user import IdentityUser

TYPE_FIELD = "type"
USER_DOCUMENT_TYPE = "user"
ROLE_DOCUMENT_TYPE = "role"
LOGIN_DOCUMENT_TYPE = "login"

_user_adapter = TypeAdapter(IdentityUser)
_role_adapter = TypeAdapter(IdentityRole)
_login_adapter = TypeAdapter(UserLoginAssociation)


def user_to_document(user: IdentityUser) -> dict[str, Any]:
    return _tagged(_user_adapter.dump_python(user, mode="json"), USER_DOCUMENT_TYPE)


def user_from_document(document: dict[str, Any]) -> IdentityUser:
    return _user_adapter.validate_python(_untagged(document))


def role_to_document(role: IdentityRole) -> dict[str, Any]:
    return _tagged(_role_adapter.dump_python(role, mode="json"), ROLE_DOCUMENT_TYPE)


def role_from_document(document: dict[str, Any]) -> IdentityRole:
    return _role_adapter.validate_python(_untagged(document))


def login_to_document(association: UserLoginAssociation) -> dict[str, Any]:
    return _tagged(_login_adapter.dump_python(association, mode="json"), LOGIN_DOCUMENT_TYPE)


def login_from_document(document: dict[str, Any]) -> UserLoginAssociation:
    return _login_adapter.validate_python(_untagged(document))


def is_document_of(document: Any, document_type: str) -> bool:
    """Return whether `document` is a record tagged with `document_type`."""

    return isinstance(document, dict) and document.get(TYPE_FIELD) == document_type


def _tagged(payload: dict[str, Any], document_type: str) -> dict[str, Any]:
    return {TYPE_FIELD: document_type, **payload}


def _untagged(document: dict[str, Any]) -> dict[str, Any]:
    return {name: value for name, value in document.items() if name != TYPE_FIELD}
