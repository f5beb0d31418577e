"""Unit tests for logging helpers and RPC path resolution."""

import json
import logging

from pharmacy_auth.api.middleware.rpc_context import rpc_method_from_path
from pharmacy_auth.logging_config import (
    CallContextFilter,
    DevFormatter,
    JsonFormatter,
    call_id_var,
    mask_email,
    rpc_method_var,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("pharmacy_auth.test", logging.INFO, __file__, 1, "Login attempt", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestMaskEmail:

    def test_masks_local_part(self):
        assert mask_email("alice@test.com") == "a***@test.com"

    def test_empty_and_malformed(self):
        assert mask_email("") == "-"
        assert mask_email(None) == "-"
        assert mask_email("no-at-sign") == "***"


class TestRpcMethodFromPath:

    def test_service_methods(self):
        assert rpc_method_from_path("/auth.AuthService/Login") == "Login"
        assert rpc_method_from_path("/auth.AuthService/CreateUser") == "CreateUser"

    def test_non_rpc_paths(self):
        assert rpc_method_from_path("/health") is None
        assert rpc_method_from_path("/other.Service/Login") is None
        assert rpc_method_from_path("/auth.AuthService/") is None


class TestFormatters:

    def test_filter_stamps_call_context(self):
        call_token = call_id_var.set("call-1")
        method_token = rpc_method_var.set("Login")
        try:
            record = _record()
            CallContextFilter().filter(record)
        finally:
            rpc_method_var.reset(method_token)
            call_id_var.reset(call_token)

        assert record.call_id == "call-1"
        assert record.rpc_method == "Login"

    def test_filter_outside_a_call(self):
        record = _record()
        CallContextFilter().filter(record)

        assert record.call_id == "-"
        assert record.rpc_method == "-"

    def test_json_output(self):
        record = _record(call_id="call-1", rpc_method="Login", email="a***@test.com")

        entry = json.loads(JsonFormatter().format(record))

        assert entry["message"] == "Login attempt"
        assert entry["level"] == "INFO"
        assert entry["call_id"] == "call-1"
        assert entry["rpc_method"] == "Login"
        assert entry["email"] == "a***@test.com"

    def test_json_omits_empty_context(self):
        entry = json.loads(JsonFormatter().format(_record(call_id="-", rpc_method="-")))

        assert "call_id" not in entry
        assert "rpc_method" not in entry

    def test_dev_output_appends_extra_fields(self):
        line = DevFormatter().format(_record(call_id="call-1", rpc_method="Login", user_id=3))

        assert "Login call=call-1 Login attempt" in line
        assert line.endswith("user_id=3")
