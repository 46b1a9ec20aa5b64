"""Settings parsing and log record shape"""
import io
import json
import logging

import pytest
from pydantic import ValidationError

from storefront.common_logging import setup_logging
from storefront.config import Settings


def test_log_settings_are_normalized():
    settings = Settings(database_url="sqlite://", log_level="debug", log_format="JSON")
    assert settings.log_level == "DEBUG"
    assert settings.log_format == "json"


@pytest.mark.parametrize("field, value", [("log_level", "loud"), ("log_format", "xml")])
def test_unknown_log_settings_rejected(field, value):
    with pytest.raises(ValidationError):
        Settings(database_url="sqlite://", **{field: value})


def test_module_loggers_carry_service_name():
    root = setup_logging("storefront-test", log_level="INFO", log_format="json")
    stream = io.StringIO()
    try:
        root.handlers[0].setStream(stream)
        logging.getLogger("storefront.services.order_service").info("order placed")

        record = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert record["service"] == "storefront-test"
        assert record["logger"] == "storefront.services.order_service"
        assert record["level"] == "INFO"
        assert record["message"] == "order placed"
    finally:
        setup_logging("storefront", log_level="INFO", log_format="text")
