"""Tests for ClientError classification."""

import pytest

from sweeper.exceptions import (
    DeleteError,
    PermanentDeleteError,
    ResourceNotFoundError,
    TransientDeleteError,
    classify_client_error,
    error_code,
    is_not_found_code,
)


class TestClassifyClientError:
    @pytest.mark.parametrize(
        "code",
        [
            "Throttling",
            "RequestLimitExceeded",
            "DependencyViolation",
            "InvalidGroup.InUse",
            "IncorrectState",
            "DeleteConflict",
            "ServiceUnavailable",
            "InternalError",
        ],
    )
    def test_transient_codes(self, aws_error, code):
        error = classify_client_error(aws_error(code))

        assert isinstance(error, TransientDeleteError)
        assert error.code == code

    @pytest.mark.parametrize(
        "code",
        [
            "InvalidInstanceID.NotFound",
            "InvalidGroup.NotFound",
            "InvalidVpcID.NotFound",
            "NoSuchEntity",
            "InvalidAllocationID.NotFound",
        ],
    )
    def test_not_found_codes(self, aws_error, code):
        error = classify_client_error(aws_error(code))

        assert isinstance(error, ResourceNotFoundError)
        assert isinstance(error, PermanentDeleteError)

    @pytest.mark.parametrize(
        "code", ["UnauthorizedOperation", "AccessDenied", "InvalidParameterValue", ""]
    )
    def test_permanent_codes(self, aws_error, code):
        error = classify_client_error(aws_error(code))

        assert type(error) is PermanentDeleteError

    def test_message_preserved(self, aws_error):
        error = classify_client_error(aws_error("DependencyViolation"))

        assert isinstance(error, DeleteError)
        assert "DependencyViolation" in str(error)


class TestErrorCodeHelpers:
    def test_error_code(self, aws_error):
        assert error_code(aws_error("Throttling")) == "Throttling"

    def test_is_not_found_code(self):
        assert is_not_found_code("InvalidKeyPair.NotFound") is True
        assert is_not_found_code("NoSuchEntity") is True
        assert is_not_found_code("DependencyViolation") is False
