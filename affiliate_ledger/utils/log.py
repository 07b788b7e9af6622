"""
Structured logging utility for ledger flows
"""
import logging
import json
from datetime import datetime
from decimal import Decimal
from typing import Dict, Any, Optional


def log_ledger_event(
    logger: logging.Logger,
    step: str,
    order_id: Optional[str],
    affiliate_id: Optional[str],
    ok: bool,
    extra: Optional[Dict[str, Any]] = None
):
    """
    Log a ledger event with structured format:
    {"at":"ledger","step":"...","oid":"...","aid":"...","ok":true/false,"extra":{...}}
    """
    log_data = {
        "at": "ledger",
        "step": step,
        "oid": order_id,
        "aid": affiliate_id,
        "ok": ok,
        "ts": datetime.utcnow().isoformat()
    }
    if extra:
        log_data["extra"] = extra

    log_msg = json.dumps(log_data, separators=(',', ':'), default=_json_default)

    if ok:
        logger.info(log_msg)
    else:
        logger.warning(log_msg)


def _json_default(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)
