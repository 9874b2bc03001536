"""Response statuses reported by the document bucket boundary."""

from __future__ import annotations

from enum import StrEnum


class ResponseStatus(StrEnum):
    """Per-operation outcome reported by a document bucket."""

    SUCCESS = "success"
    KEY_NOT_FOUND = "key_not_found"
    KEY_EXISTS = "key_exists"
    INVALID_ARGUMENTS = "invalid_arguments"
    TEMPORARY_FAILURE = "temporary_failure"
    CLIENT_FAILURE = "client_failure"
    QUERY_ERROR = "query_error"
