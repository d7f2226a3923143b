"""Logging for the document gateway.

Emits structured log records to stdout and appends them to an append-only
log file for local review.
"""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger("docgate")

_FORMAT = "%(asctime)s %(name)s [%(levelname)s] %(message)s"


def setup_logging(log_file: str, level: Union[int, str] = logging.INFO) -> None:
    """Send gateway records to stdout and to an append-only file.

    Calling it again (e.g. after a config reload) replaces the handlers it
    installed earlier instead of stacking duplicates.

    Args:
        log_file: Path to the append-only log file.
        level: Threshold for the "docgate" logger, as a number or level name.
    """
    logger.setLevel(level)
    formatter = logging.Formatter(_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")

    for handler in [h for h in logger.handlers if getattr(h, "_docgate", False)]:
        logger.removeHandler(handler)
        handler.close()

    log_path = Path(log_file)
    os.makedirs(log_path.parent, exist_ok=True)
    handlers = [
        logging.StreamHandler(),
        logging.FileHandler(log_path, mode="a", encoding="utf-8"),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)
        handler._docgate = True  # type: ignore[attr-defined]
        logger.addHandler(handler)


def log_submit(
    *,
    request_id: str,
    epoch: int,
    method: str,
    path: str,
    outcome: str,
    status_code: Optional[int] = None,
    error: Optional[str] = None
) -> None:
    """Log the outcome of one Gateway.submit call as a JSON line.

    Args:
        request_id: Gateway-assigned request ID.
        epoch: Gateway epoch the request ran in.
        method: HTTP method of the descriptor.
        path: API path of the descriptor.
        outcome: "success" or the failure kind (e.g. "api_failure").
        status_code: Upstream status for API failures.
        error: Failure detail if the request failed.
    """
    record: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": request_id,
        "epoch": epoch,
        "method": method,
        "path": path,
        "outcome": outcome,
    }

    if status_code is not None:
        record["status_code"] = status_code

    if error:
        record["error"] = error

    if outcome == "success":
        logger.info(json.dumps(record))
    else:
        logger.warning(json.dumps(record))
