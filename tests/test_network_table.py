import pytest

from rn_bridge.modules.telemetry.network_table import NetworkTable


def test_eviction_follows_insertion_order(make_request):
    table = NetworkTable(capacity=2)
    table.add(make_request("1"))
    table.add(make_request("2"))
    table.add(make_request("3"))

    assert "1" not in table
    assert [r.request_id for r in table.all()] == ["2", "3"]


def test_incomplete_requests_are_evicted_too(make_request):
    table = NetworkTable(capacity=1)
    table.add(make_request("pending"))
    table.add(make_request("next", completed=True))

    assert table.get("pending") is None


def test_add_known_id_replaces_in_place(make_request):
    table = NetworkTable(capacity=3)
    table.add(make_request("1"))
    table.add(make_request("2"))
    table.add(make_request("1", url="https://api.example.com/redirected"))

    assert [r.request_id for r in table.all()] == ["1", "2"]
    assert table.get("1").url == "https://api.example.com/redirected"


def test_update_unknown_id_changes_nothing(make_request):
    table = NetworkTable()
    table.add(make_request("1"))

    assert table.update("nope", status=200) is False
    assert table.get("1").status is None


def test_update_rejects_unknown_fields(make_request):
    table = NetworkTable()
    table.add(make_request("1"))

    with pytest.raises(TypeError):
        table.update("1", request_id="2")


def test_completed_never_reverts(make_request):
    table = NetworkTable()
    table.add(make_request("1"))
    table.update("1", completed=True)
    table.update("1", completed=False)

    assert table.get("1").completed is True


def test_reads_return_copies(make_request):
    table = NetworkTable()
    table.add(make_request("1", headers={"Accept": "*/*"}))

    copy = table.get("1")
    copy.status = 500
    copy.headers["X-Test"] = "1"

    stored = table.get("1")
    assert stored.status is None
    assert "X-Test" not in stored.headers


def test_list_filters(make_request):
    table = NetworkTable()
    table.add(make_request("1", method="GET", status=200, completed=True))
    table.add(make_request("2", method="POST", url="https://api.example.com/login", status=401, completed=True))
    table.add(make_request("3", method="get", url="https://cdn.example.com/logo.png"))

    assert [r.request_id for r in table.list(method="get")] == ["1", "3"]
    assert [r.request_id for r in table.list(url_pattern="LOGIN")] == ["2"]
    assert [r.request_id for r in table.list(status=401)] == ["2"]
    assert [r.request_id for r in table.list(completed_only=True)] == ["1", "2"]
    assert [r.request_id for r in table.list(count=1)] == ["3"]


def test_search_keeps_latest_matches(make_request):
    table = NetworkTable()
    for i in range(4):
        table.add(make_request(str(i), url=f"https://api.example.com/items/{i}"))

    assert [r.request_id for r in table.search("items", max_results=2)] == ["2", "3"]


def test_stats(make_request):
    table = NetworkTable()
    table.add(make_request("1", method="GET", status=200, duration_ms=100.0, completed=True))
    table.add(make_request("2", method="GET", status=204, duration_ms=300.0, completed=True))
    table.add(make_request("3", method="POST", url="https://auth.example.org/token", status=500,
                           error="net::ERR_FAILED", duration_ms=50.0, completed=True))
    table.add(make_request("4", method="GET", url="https://cdn.example.com/a.png"))

    stats = table.stats()
    assert stats["total"] == 4
    assert stats["completed"] == 3
    assert stats["errors"] == 1
    assert stats["avg_duration_ms"] == 150.0
    assert stats["by_method"] == {"GET": 3, "POST": 1}
    assert stats["by_status"] == {"2xx": 2, "5xx": 1}
    assert stats["by_domain"]["api.example.com"] == 2
    assert stats["by_domain"]["auth.example.org"] == 1


def test_stats_on_empty_table():
    stats = NetworkTable().stats()
    assert stats["total"] == 0
    assert stats["avg_duration_ms"] is None


def test_clear_returns_count(make_request):
    table = NetworkTable()
    table.add(make_request("1"))

    assert table.clear() == 1
    assert table.size == 0
