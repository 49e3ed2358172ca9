"""Tests for the operation-specific Rich renderers."""

from lendctl.output.renderers import render_result
from lendctl.services.result import ErrorCode, ServiceResult


def _ok(op: str, **data: object) -> ServiceResult:
    return ServiceResult(ok=True, op=op, data=dict(data))


def _request(rid: str, status: str, title: str, **extra: object) -> dict[str, object]:
    return {
        "id": rid,
        "borrower_id": "usr_1",
        "item_id": "itm_1",
        "status": status,
        "requested_at": "2030-01-01T09:00:00Z",
        "approved_at": None,
        "due_at": None,
        "returned_at": None,
        "reviewer_id": None,
        "item_title": title,
        **extra,
    }


def _header(output: str) -> str:
    [line] = [ln for ln in output.splitlines() if "ID" in ln]
    return line


class TestErrorRenderer:
    def test_code_and_message(self) -> None:
        result = ServiceResult.failure("approve", ErrorCode.CONFLICT, "No copy left", item_id="x")
        output = render_result(result)
        assert output == "ERROR  approve  [CONFLICT] No copy left"

    def test_verbose_shows_detail(self) -> None:
        result = ServiceResult.failure("approve", ErrorCode.CONFLICT, "No copy", item_id="itm_9")
        output = render_result(result, verbose=True)
        assert "detail:" in output
        assert "item_id: itm_9" in output

    def test_no_error_object(self) -> None:
        assert "Unknown error" in render_result(ServiceResult(ok=False, op="scan"))


class TestListings:
    def test_request_table(self) -> None:
        result = _ok(
            "find_active",
            count=2,
            items=[
                _request("req_1", "pending", "Dune"),
                _request("req_2", "approved", "Emma", due_at="2030-01-15T09:00:00Z"),
            ],
        )
        output = render_result(result)
        lines = output.splitlines()
        assert lines[0] == "OK  find_active"
        assert "  count: 2" in lines
        header = _header(output)
        for column in ("ID", "Item", "Status", "Requested", "Due"):
            assert column in header
        assert "Borrower" not in header
        [dune] = [ln for ln in lines if "req_1" in ln]
        assert "Dune" in dune
        assert "pending" in dune
        [emma] = [ln for ln in lines if "req_2" in ln]
        assert "2030-01-15" in emma
        assert "09:00" not in emma

    def test_verbose_adds_people_columns(self) -> None:
        result = _ok("find_by_borrower", count=1, items=[_request("req_1", "pending", "Dune")])
        header = _header(render_result(result, verbose=True))
        assert "Borrower" in header
        assert "Reviewer" in header

    def test_empty_listing(self) -> None:
        output = render_result(_ok("list_watchlist", count=0, items=[]))
        assert output.splitlines() == ["OK  list_watchlist", "  count: 0", "  (none)"]

    def test_items_table(self) -> None:
        result = _ok(
            "list_items",
            count=1,
            items=[{"id": "itm_1", "title": "Dune", "available_copies": 0, "total_copies": 2}],
        )
        output = render_result(result)
        assert "Available" in _header(output)
        [row] = [ln for ln in output.splitlines() if "itm_1" in ln]
        assert "Dune" in row
        assert "0" in row
        assert "2" in row

    def test_notifications_mark_unread(self) -> None:
        result = _ok(
            "list_notifications",
            count=2,
            items=[
                {"id": "ntf_1", "type": "OVERDUE", "message": "late", "read": False},
                {"id": "ntf_2", "type": "BOOK_AVAILABLE", "message": "back", "read": True},
            ],
        )
        lines = render_result(result).splitlines()
        [unread] = [ln for ln in lines if "ntf_1" in ln]
        [read] = [ln for ln in lines if "ntf_2" in ln]
        assert "new" in unread
        assert "yes" in read

    def test_users_table(self) -> None:
        result = _ok(
            "list_users",
            count=1,
            items=[{"id": "usr_1", "name": "Grace", "email": "g@x.org", "role": "librarian"}],
        )
        [row] = [ln for ln in render_result(result).splitlines() if "usr_1" in ln]
        assert "Grace" in row
        assert "librarian" in row

    def test_drain_summary_and_rows(self) -> None:
        result = _ok(
            "drain",
            retried=1,
            statuses={"completed": 1},
            items=[
                {
                    "id": 4,
                    "event_type": "OVERDUE",
                    "handler": "OVERDUE:store",
                    "status": "completed",
                }
            ],
        )
        output = render_result(result)
        assert '  statuses: {"completed":1}' in output
        assert "OVERDUE:store" in output


class TestRequestPanel:
    def test_panel_titled_with_id_and_status(self) -> None:
        data = _request("req_7", "returned", "Dune", late=True, restocked=False)
        data["returned_at"] = "2030-01-20T09:00:00Z"
        output = render_result(ServiceResult(ok=True, op="return_item", data=data))
        assert output.splitlines()[0] == "OK  return_item"
        assert "req_7  returned" in output
        assert "returned_at: 2030-01-20T09:00:00Z" in output
        assert "late: True" in output
        assert "restocked: False" in output
        assert "approved_at" not in output


class TestVerboseMeta:
    def test_span_tree_with_annotations(self) -> None:
        result = ServiceResult(
            ok=True,
            op="approve",
            data={"id": "req_1", "status": "approved"},
            meta={
                "telemetry": {
                    "name": "BorrowLifecycleManager.approve",
                    "duration_ms": 3.5,
                    "children": [
                        {
                            "name": "reserve_copy",
                            "duration_ms": 0.4,
                            "annotations": {"item_id": "itm_1", "available_copies": 0},
                        }
                    ],
                }
            },
        )
        output = render_result(result, verbose=True)
        assert "BorrowLifecycleManager.approve" in output
        assert "reserve_copy  (item_id=itm_1, available_copies=0)" in output
        assert "meta" not in render_result(result)
