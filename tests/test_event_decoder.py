import pytest

from rn_bridge.modules.telemetry import LogBuffer, NetworkTable, TelemetryEventDecoder

# --- Mocks and Fixtures ---

@pytest.fixture
def log_buffer():
    return LogBuffer(capacity=10)


@pytest.fixture
def network_table():
    return NetworkTable(capacity=10)


@pytest.fixture
def decoder(log_buffer, network_table):
    return TelemetryEventDecoder(log_buffer, network_table)


def request_sent(request_id="r1", url="https://api.example.com/items", method="GET", timestamp=100.0):
    return {
        "requestId": request_id,
        "timestamp": timestamp,
        "wallTime": 1700000000.0,
        "request": {"url": url, "method": method, "headers": {"Accept": "application/json"}},
    }

# --- Console ---

def test_console_call_becomes_log_record(decoder, log_buffer):
    decoder("Runtime.consoleAPICalled", {
        "type": "warning",
        "timestamp": 1700000000000,
        "args": [{"type": "string", "value": "count is"}, {"type": "number", "value": 3, "description": "3"}],
    })

    records = log_buffer.all()
    assert len(records) == 1
    assert records[0].level == "warn"
    assert records[0].message == "count is 3"


def test_console_object_argument_uses_preview(decoder, log_buffer):
    decoder("Runtime.consoleAPICalled", {
        "type": "log",
        "args": [{
            "type": "object", "className": "Object", "description": "Object", "objectId": "1",
            "preview": {"type": "object", "overflow": False, "properties": [
                {"name": "id", "type": "number", "value": "7"},
                {"name": "name", "type": "string", "value": "Ada"},
            ]},
        }],
    })

    assert log_buffer.all()[0].message == '{id: 7, name: "Ada"}'


def test_log_entry_added(decoder, log_buffer):
    decoder("Log.entryAdded", {"entry": {"level": "verbose", "text": "native says hi", "timestamp": 1700000000000}})

    record = log_buffer.all()[0]
    assert record.level == "debug"
    assert record.message == "native says hi"


def test_exception_thrown_is_error_record(decoder, log_buffer):
    decoder("Runtime.exceptionThrown", {
        "timestamp": 1700000000000,
        "exceptionDetails": {
            "text": "Uncaught",
            "lineNumber": 12,
            "columnNumber": 4,
            "exception": {"type": "object", "subtype": "error", "description": "TypeError: x is undefined"},
        },
    })

    record = log_buffer.all()[0]
    assert record.level == "error"
    assert record.message == "TypeError: x is undefined (line 12, column 4)"


def test_malformed_event_is_dropped(decoder, log_buffer, network_table):
    decoder("Log.entryAdded", {})
    decoder("Network.requestWillBeSent", {"requestId": "r1"})

    assert log_buffer.size == 0
    assert network_table.size == 0


def test_unrelated_events_are_ignored(decoder, log_buffer):
    decoder("Debugger.scriptParsed", {"scriptId": "1"})
    assert log_buffer.size == 0

# --- Network ---

def test_request_lifecycle(decoder, network_table):
    decoder("Network.requestWillBeSent", request_sent())
    decoder("Network.responseReceived", {
        "requestId": "r1",
        "timestamp": 100.25,
        "response": {"status": 200, "statusText": "OK", "headers": {"Content-Type": "application/json"},
                     "mimeType": "application/json"},
    })
    decoder("Network.loadingFinished", {"requestId": "r1", "timestamp": 100.5, "encodedDataLength": 123})

    record = network_table.get("r1")
    assert record.status == 200
    assert record.status_text == "OK"
    assert record.mime_type == "application/json"
    assert record.content_length == 123
    assert record.duration_ms == 500.0
    assert record.completed is True
    assert record.error is None
    assert (record.request_id, record.url, record.method) == ("r1", "https://api.example.com/items", "GET")


def test_loading_failed(decoder, network_table):
    decoder("Network.requestWillBeSent", request_sent())
    decoder("Network.loadingFailed", {"requestId": "r1", "timestamp": 101.0, "errorText": "net::ERR_TIMED_OUT"})

    record = network_table.get("r1")
    assert record.completed is True
    assert record.error == "net::ERR_TIMED_OUT"
    assert record.duration_ms == 1000.0


def test_redirect_updates_existing_record(decoder, network_table):
    decoder("Network.requestWillBeSent", request_sent(url="http://api.example.com/old"))
    decoder("Network.requestWillBeSent", request_sent(url="https://api.example.com/new", timestamp=100.1))

    assert network_table.size == 1
    assert network_table.get("r1").url == "https://api.example.com/new"


def test_events_for_unknown_request_are_dropped(decoder, network_table):
    decoder("Network.responseReceived", {"requestId": "ghost", "response": {"status": 200}})
    decoder("Network.loadingFinished", {"requestId": "ghost"})
    decoder("Network.loadingFailed", {"requestId": "ghost", "errorText": "boom"})

    assert network_table.size == 0
