from structlog.testing import capture_logs

from fee_engine.domain import volume
from fee_engine.log import get_logger


def test_logger_is_bound_with_module_name():
    logger = get_logger("fee_engine.domain.fees")
    with capture_logs() as logs:
        logger.warning("fx_rate_missing", source="EUR", target="JPY")

    assert logs == [
        {
            "event": "fx_rate_missing",
            "log_level": "warning",
            "logger": "fee_engine.domain.fees",
            "source": "EUR",
            "target": "JPY",
        }
    ]


def test_module_level_loggers_capture_after_import():
    with capture_logs() as logs:
        volume.logger.warning("fx_conversion_skipped", client_id="C001")

    assert logs[0]["logger"] == "fee_engine.domain.volume"
