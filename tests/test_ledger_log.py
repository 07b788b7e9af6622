import json
import logging
from decimal import Decimal

from affiliate_ledger.utils import log as ledger_log
from affiliate_ledger.utils.log import log_ledger_event


def _payload(caplog):
    return json.loads(caplog.records[-1].getMessage())


def test_successful_event_logged_as_info(caplog):
    logger = logging.getLogger("affiliate_ledger.test")
    with caplog.at_level(logging.INFO, logger="affiliate_ledger.test"):
        log_ledger_event(logger, "settle", "o-1", "a-1", True, {"commission": Decimal("150.00")})

    assert caplog.records[-1].levelno == logging.INFO
    payload = _payload(caplog)
    assert payload["at"] == "ledger"
    assert payload["step"] == "settle"
    assert payload["oid"] == "o-1"
    assert payload["aid"] == "a-1"
    assert payload["extra"] == {"commission": "150.00"}


def test_failed_event_logged_as_warning(caplog):
    logger = logging.getLogger("affiliate_ledger.test")
    with caplog.at_level(logging.INFO, logger="affiliate_ledger.test"):
        log_ledger_event(logger, "settle", "o-2", None, False)

    assert caplog.records[-1].levelno == logging.WARNING
    assert "extra" not in _payload(caplog)


def test_module_exposes_only_ledger_event_helper():
    public = {name for name in vars(ledger_log) if not name.startswith("_")}
    assert "get_logger" not in public
