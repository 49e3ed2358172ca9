"""Tests for format_result — JSON versus Rich-rendered human output."""

import json

from lendctl.output.formatters import format_result
from lendctl.services.result import ErrorCode, ServiceResult


def _ok(op: str = "test", **data: object) -> ServiceResult:
    return ServiceResult(ok=True, op=op, data=dict(data))


class TestJson:
    def test_success(self) -> None:
        output = format_result(_ok("query", item_id="itm_1", available_copies=2), json_output=True)
        data = json.loads(output)
        assert data["ok"] is True
        assert data["op"] == "query"
        assert data["data"]["available_copies"] == 2

    def test_failure(self) -> None:
        result = ServiceResult.failure("approve", ErrorCode.CONFLICT, "No copies", item_id="itm_1")
        data = json.loads(format_result(result, json_output=True))
        assert data["ok"] is False
        assert data["error"]["code"] == "CONFLICT"
        assert data["error"]["detail"] == {"item_id": "itm_1"}

    def test_json_ignores_verbose(self) -> None:
        result = _ok("query", item_id="itm_1")
        assert format_result(result, json_output=True, verbose=True) == format_result(
            result, json_output=True
        )


class TestHuman:
    def test_key_value_lines(self) -> None:
        output = format_result(_ok("query", item_id="itm_1", available_copies=0))
        assert output.splitlines() == [
            "OK  query",
            "  item_id: itm_1",
            "  available_copies: 0",
        ]

    def test_op_only_without_data(self) -> None:
        assert format_result(_ok("mark_read")) == "OK  mark_read"

    def test_nested_values_as_compact_json(self) -> None:
        output = format_result(_ok("scan", counts={"overdue": 1}))
        assert '  counts: {"overdue":1}' in output

    def test_error_line(self) -> None:
        result = ServiceResult.failure("mark_read", ErrorCode.FORBIDDEN, "Not yours")
        assert format_result(result) == "ERROR  mark_read  [FORBIDDEN] Not yours"

    def test_no_ansi_outside_a_terminal(self) -> None:
        assert "\x1b" not in format_result(_ok("query", item_id="itm_1"))
