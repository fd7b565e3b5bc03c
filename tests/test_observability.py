from rn_bridge import observability


def test_setup_tracing_installs_provider_once(mocker, monkeypatch):
    monkeypatch.setattr(observability, "_tracing_initialized", False)
    set_provider = mocker.patch("rn_bridge.observability.trace.set_tracer_provider")
    exporter = mocker.patch("rn_bridge.observability.OTLPSpanExporter")
    mocker.patch("rn_bridge.observability.BatchSpanProcessor")

    observability.setup_tracing("rn-bridge-test")
    observability.setup_tracing("rn-bridge-test")

    set_provider.assert_called_once()
    exporter.assert_called_once_with()


def test_get_tracer_without_setup_is_usable():
    tracer = observability.get_tracer(__name__)
    with tracer.start_as_current_span("noop") as span:
        span.set_attribute("k", "v")
