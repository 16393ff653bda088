# =============================================================================
# tests/unit/test_errors.py
# Unit Tests for the exception hierarchy and handlers
# =============================================================================

import pytest

from shopfloor_core.errors import (
    ActiveLogConflictError,
    ConfigurationError,
    DataValidationError,
    ErrorKind,
    NetworkOfflineError,
    PermissionDeniedError,
    RecordNotFoundError,
    RemoteStoreError,
    ShopFloorError,
    ToastMessage,
    error_boundary,
    handle_error,
    safe_execute,
)


class TestExceptionHierarchy:

    def test_base_to_dict(self):
        error = ShopFloorError("boom", code="X_1", details={"a": 1})

        assert error.to_dict() == {
            "error_type": "ShopFloorError",
            "code": "X_1",
            "message": "boom",
            "details": {"a": 1},
            "recoverable": True,
        }
        assert str(error) == "[X_1] boom | Details: {'a': 1}"

    def test_remote_errors_carry_kind_and_default_message(self):
        cause = RuntimeError("socket closed")
        error = NetworkOfflineError(cause=cause, operation="save_job")

        assert isinstance(error, RemoteStoreError)
        assert error.kind == ErrorKind.NETWORK_OFFLINE
        assert error.message == "Network Offline"
        assert error.code == "REMOTE_503"
        assert error.cause is cause
        assert error.details["operation"] == "save_job"

    def test_record_not_found(self):
        error = RecordNotFoundError("Log not found.", collection="logs", record_id="l1")

        assert error.code == "DATA_404"
        assert error.details == {"collection": "logs", "record_id": "l1"}

    def test_active_log_conflict_is_validation_error(self):
        error = ActiveLogConflictError("u1", "log-9")

        assert isinstance(error, DataValidationError)
        assert error.code == "DATA_409"

    def test_configuration_error_not_recoverable(self):
        assert ConfigurationError("bad key", config_key="supabase").recoverable is False


class TestHandleError:

    def test_shop_floor_error_message(self):
        toast = handle_error(PermissionDeniedError())

        assert toast.type == "error"
        assert toast.message == "Permission Denied: Check database access policies."

    def test_custom_user_message(self):
        assert handle_error(ValueError("raw"), user_message="Could not save").message == "Could not save"

    def test_non_recoverable_adds_hint(self):
        toast = handle_error(ConfigurationError("Invalid remote configuration"))
        assert toast.message.endswith("Please contact your administrator.")

    def test_toast_ids_unique(self):
        assert ToastMessage.success("a").id != ToastMessage.success("a").id


class TestSafeExecute:

    def test_returns_value(self):
        assert safe_execute(lambda x: x * 2, 4) == 8

    def test_returns_default_on_error(self):
        def fail():
            raise RecordNotFoundError("missing")

        assert safe_execute(fail, default="fallback") == "fallback"

    def test_reraise(self):
        def fail():
            raise ValueError("x")

        with pytest.raises(ValueError):
            safe_execute(fail, reraise=True)


def test_error_boundary_swallows():
    @error_boundary(default_return=False)
    def flaky():
        raise RuntimeError("calendar down")

    assert flaky() is False
