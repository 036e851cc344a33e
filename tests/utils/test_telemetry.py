"""Tests for the tracing helpers."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from opentelemetry import trace

from aicommand.utils import telemetry
from aicommand.utils.telemetry import ATTR_ROUND, configure_telemetry, get_tracer


def test_tracer_is_usable_without_sdk() -> None:
    tracer = get_tracer(__name__)
    assert isinstance(tracer, trace.Tracer)
    with tracer.start_as_current_span("agent.round") as span:
        span.set_attribute(ATTR_ROUND, 1)


def test_attribute_keys_share_one_namespace() -> None:
    keys = [value for name, value in vars(telemetry).items() if name.startswith("ATTR_")]
    assert keys
    assert all(key.startswith("aicommand.") for key in keys)
    assert len(set(keys)) == len(keys)


def test_missing_sdk_points_at_extra() -> None:
    with patch.dict("sys.modules", {"opentelemetry.sdk.resources": None}):
        with pytest.raises(ImportError, match=r"ai-command\[otel\]"):
            configure_telemetry(export_to_console=True)


class TestWithSdk:
    @pytest.fixture(autouse=True)
    def _sdk(self) -> None:
        pytest.importorskip("opentelemetry.sdk.trace")

    def test_installs_provider(self) -> None:
        with patch.object(telemetry.trace, "set_tracer_provider") as set_provider:
            configure_telemetry(service_name="test-svc", export_to_console=True)

        provider = set_provider.call_args.args[0]
        assert provider.resource.attributes["service.name"] == "test-svc"

    def test_otlp_endpoint_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(telemetry.OTLP_ENDPOINT_ENV, "http://collector:4317")
        with (
            patch.object(telemetry, "_otlp_exporter") as exporter,
            patch.object(telemetry.trace, "set_tracer_provider"),
            patch("opentelemetry.sdk.trace.export.BatchSpanProcessor"),
        ):
            configure_telemetry()

        exporter.assert_called_once_with("http://collector:4317")

    def test_otlp_requires_exporter_package(self) -> None:
        with (
            patch.dict(
                "sys.modules",
                {"opentelemetry.exporter.otlp.proto.grpc.trace_exporter": None},
            ),
            patch.object(telemetry.trace, "set_tracer_provider"),
            pytest.raises(ImportError, match="opentelemetry-exporter-otlp"),
        ):
            configure_telemetry(otlp_endpoint="http://localhost:4317")
