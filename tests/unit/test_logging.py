from __future__ import annotations

from schemafield import logger as package_logger
from schemafield.logging import configure_logging, get_field_logger, get_logger
from schemafield.settings import Settings


def test_stdlib_logger_is_configured(capsys) -> None:
    configure_logging(settings=Settings(LOG_JSON=False, LOG_LEVEL="INFO"), force=True)
    logger = get_logger("tests")
    logger.info("hello")

    captured = capsys.readouterr()
    assert "hello" in captured.err.lower()


def test_extra_payload_is_flattened_in_json_output(capsys) -> None:
    configure_logging(settings=Settings(LOG_JSON=True, LOG_LEVEL="INFO"), force=True)
    logger = get_logger("tests")
    logger.info("fetched", extra={"url": "/items"})

    captured = capsys.readouterr()
    assert '"url": "/items"' in captured.err
    assert '"message": "fetched"' in captured.err

    configure_logging(settings=Settings(LOG_JSON=False, LOG_LEVEL="INFO"), force=True)


def test_field_logger_binds_field_key(capsys) -> None:
    configure_logging(settings=Settings(LOG_JSON=True, LOG_LEVEL="INFO"), force=True)
    logger = get_field_logger("address.city")
    logger.info("changed", extra={"field_key": "ignored"})

    captured = capsys.readouterr()
    assert '"field_key": "address.city"' in captured.err

    configure_logging(settings=Settings(LOG_JSON=False, LOG_LEVEL="INFO"), force=True)


def test_package_logger_created_on_import() -> None:
    assert callable(getattr(package_logger, "info", None))
