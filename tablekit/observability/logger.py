# tablekit/observability/logger.py

# structured JSON logger
import logging
import os
import sys

from pythonjsonlogger import jsonlogger

from opentelemetry import trace


class TraceIdFilter(logging.Filter):
    """Inject trace_id into the record if OpenTelemetry is active."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "trace_id"):
            record.trace_id = None
            ctx = trace.get_current_span().get_span_context()
            if ctx and ctx.trace_id:
                record.trace_id = f"{ctx.trace_id:032x}"
        return True


def build_formatter() -> logging.Formatter:
    return jsonlogger.JsonFormatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(message)s %(pathname)s %(lineno)d %(trace_id)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )


def configure_logging(config_module) -> None:
    """Configure root logging and align existing loggers to JSON formatting.

    - Reuses the access/error file handlers from utils.logger, switching them to JSON.
    - Adds a JSON console handler (stdout) on the root logger.
    - Injects trace_id when tracing is enabled.
    """
    root = logging.getLogger()
    root.setLevel(getattr(config_module, "LOG_LEVEL", "INFO"))

    formatter = build_formatter()
    trace_filter = TraceIdFilter()

    os.makedirs(getattr(config_module, "LOGS_PATH", "logs"), exist_ok=True)

    # Replace formatters on the file handlers set by utils.logger
    for logger_name in ("access", "error"):
        lg = logging.getLogger(logger_name)
        lg.setLevel(logging.INFO if logger_name == "access" else logging.ERROR)
        lg.propagate = False  # keep file routing stable
        for h in list(lg.handlers):
            h.setFormatter(formatter)
            h.addFilter(trace_filter)

    # Add a JSON console handler on root (single instance)
    have_console = any(isinstance(h, logging.StreamHandler) for h in root.handlers)
    if not have_console:
        console = logging.StreamHandler(stream=sys.stdout)
        console.setFormatter(formatter)
        console.addFilter(trace_filter)
        root.addHandler(console)

    logging.getLogger("startup").info("logging configured")
