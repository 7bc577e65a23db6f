from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict

# Context fields attached through `extra=` by the verification path.
CONTEXT_FIELDS = ("key_id", "key_type", "error_code", "image_digest")


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)


def configure_logging() -> None:
    """
    Install the attestgate formatter on the root logger.
    ATTESTGATE_LOG_FORMAT selects `json` (default) or `text`; ATTESTGATE_LOG_LEVEL the level.
    """
    level_name = (os.getenv("ATTESTGATE_LOG_LEVEL") or "INFO").strip().upper()
    log_format = (os.getenv("ATTESTGATE_LOG_FORMAT") or "json").strip().lower()

    formatter: logging.Formatter
    if log_format == "json":
        formatter = JsonLogFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")

    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))
    if not root.handlers:
        root.addHandler(logging.StreamHandler())
    for handler in root.handlers:
        handler.setFormatter(formatter)
