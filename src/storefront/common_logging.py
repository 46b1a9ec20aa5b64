"""
Logging setup for the storefront service
"""
import logging
import sys
from pythonjsonlogger import jsonlogger

JSON_FIELDS = "%(asctime)s %(name)s %(levelname)s %(service)s %(message)s"
TEXT_FORMAT = "%(asctime)s - %(service)s - %(name)s - %(levelname)s - %(message)s"


class ServiceFilter(logging.Filter):
    """Stamps every record with the service name"""

    def __init__(self, service_name: str):
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.service = self.service_name
        return True


def setup_logging(service_name: str, log_level: str = "INFO", log_format: str = "json") -> logging.Logger:
    """
    Route all logging to stdout, as JSON lines or plain text

    Every record, whichever module logger emitted it, carries a
    ``service`` field. Calling this again replaces the previous handler.

    Args:
        service_name: Value of the ``service`` field
        log_level: DEBUG, INFO, WARNING or ERROR
        log_format: ``json`` or ``text``
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper()))
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ServiceFilter(service_name))

    if log_format.lower() == "json":
        formatter = jsonlogger.JsonFormatter(
            fmt=JSON_FIELDS,
            rename_fields={"asctime": "timestamp", "name": "logger", "levelname": "level"}
        )
        formatter.default_time_format = "%Y-%m-%dT%H:%M:%S"
        formatter.default_msec_format = "%s.%03dZ"
    else:
        formatter = logging.Formatter(fmt=TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    handler.setFormatter(formatter)
    root.addHandler(handler)

    # Uvicorn loggers propagate to the root handler
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.propagate = True

    root.info(f"Logging initialized for {service_name} at level {log_level}")
    return root
