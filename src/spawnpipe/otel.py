"""OpenTelemetry spans for pipelines.

spawnpipe.otel
~~~~~~~~~~~~~~

One ``spawnpipe.pipeline`` span per :class:`~spawnpipe.pipeline.Pipeline`. It
is opened when the chain is spawned and closed right before the completion
callback runs, so its duration covers the whole chain.

Optional: without the ``otel`` extra installed, or with export disabled by
environment, every helper degrades to a no-op.
"""

from __future__ import annotations

import logging
import os
import typing as t

from .__about__ import __version__

if t.TYPE_CHECKING:
    from .process import ProcessHandle

logger = logging.getLogger(__name__)

try:  # pragma: no cover - optional dependency
    from opentelemetry import trace
    from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
        OTLPSpanExporter,
    )
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor
except ImportError:  # pragma: no cover - optional dependency
    HAS_OTEL = False
else:
    HAS_OTEL = True

#: Name of the span covering one pipeline
PIPELINE_SPAN_NAME = "spawnpipe.pipeline"

#: Endpoint variables that enable export when :envvar:`SPAWNPIPE_OTEL` is unset
OTLP_ENDPOINT_VARS = (
    "OTEL_EXPORTER_OTLP_ENDPOINT",
    "OTEL_EXPORTER_OTLP_TRACES_ENDPOINT",
)

_ON = frozenset({"1", "true", "yes", "on"})
_OFF = frozenset({"0", "false", "no", "off"})

#: Provider spans are created from, resolved on first use
_tracer_provider: t.Any = None


def otel_enabled() -> bool:
    """Return True when span export is enabled by environment.

    :envvar:`SPAWNPIPE_OTEL` wins, otherwise any OTLP endpoint enables it.

    >>> import os
    >>> os.environ["SPAWNPIPE_OTEL"] = "off"
    >>> otel_enabled()
    False
    >>> del os.environ["SPAWNPIPE_OTEL"]
    """
    flag = os.environ.get("SPAWNPIPE_OTEL", "").strip().lower()
    if flag in _ON:
        return True
    if flag in _OFF:
        return False
    return any(os.environ.get(name) for name in OTLP_ENDPOINT_VARS)


def _get_tracer() -> t.Any:
    """Return a tracer, installing an OTLP exporting provider if none is set.

    A provider configured by the application is used as it is.
    """
    global _tracer_provider
    if not HAS_OTEL or not otel_enabled():
        return None
    if _tracer_provider is None:
        provider = trace.get_tracer_provider()
        if isinstance(provider, trace.ProxyTracerProvider):
            try:
                provider = TracerProvider(
                    resource=Resource.create(
                        {"service.name": "spawnpipe", "service.version": __version__},
                    ),
                )
                provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter()))
                trace.set_tracer_provider(provider)
            except Exception:  # pragma: no cover - exporter misconfiguration
                logger.debug("could not configure span export", exc_info=True)
                return None
        _tracer_provider = provider
    return _tracer_provider.get_tracer("spawnpipe", __version__)


def start_pipeline_span(chain: str, commands: int) -> t.Any:
    """Open the span of a pipeline, ``None`` when tracing is off.

    >>> os.environ["SPAWNPIPE_OTEL"] = "0"
    >>> start_pipeline_span("yes | head", 2) is None
    True
    >>> del os.environ["SPAWNPIPE_OTEL"]
    """
    tracer = _get_tracer()
    if tracer is None:
        return None
    return tracer.start_span(
        PIPELINE_SPAN_NAME,
        attributes={"spawnpipe.chain": chain, "spawnpipe.commands": commands},
    )


def record_spawn_failure(span: t.Any, handle: ProcessHandle) -> None:
    """Add a ``spawn_failure`` event for a command that failed to start."""
    if span is None:
        return
    span.add_event(
        "spawn_failure",
        attributes={
            "spawnpipe.command": handle.name,
            "spawnpipe.error": str(handle.error),
        },
    )


def end_pipeline_span(span: t.Any, exit_code: int) -> None:
    """Record the final exit code and close the span."""
    if span is None:
        return
    span.set_attribute("spawnpipe.exit_code", exit_code)
    if exit_code != 0:
        span.set_status(
            trace.Status(trace.StatusCode.ERROR, f"exit code {exit_code}"),
        )
    span.end()


__all__ = [
    "end_pipeline_span",
    "otel_enabled",
    "record_spawn_failure",
    "start_pipeline_span",
]
