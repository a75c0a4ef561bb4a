"""Domain error to HTTP status mapping."""

import pytest

from studynotes.api.v1.errors import to_http_exception
from studynotes.core.errors import (
    AuthCancelled,
    BackendQueryError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    ValidationError,
)
from studynotes.dependencies import bearer_token_from_header


@pytest.mark.parametrize(
    ("error", "status_code"),
    [
        (ValidationError("Please enter a title"), 400),
        (NotFoundError("Note not found"), 404),
        (PermissionDeniedError("Only the author can modify this note"), 403),
        (StorageError("upload failed"), 502),
        (BackendQueryError("bad filter"), 502),
        (AuthCancelled("closed"), 500),
    ],
)
def test_status_mapping(error, status_code):
    exc = to_http_exception(error)

    assert exc.status_code == status_code


def test_domain_errors_keep_builtin_bases():
    assert isinstance(ValidationError("x"), ValueError)
    assert isinstance(NotFoundError("x"), LookupError)


def test_bearer_token_parsing():
    assert bearer_token_from_header("Bearer abc.def.ghi") == "abc.def.ghi"
    assert bearer_token_from_header("Basic xyz") is None
    assert bearer_token_from_header(None) is None
