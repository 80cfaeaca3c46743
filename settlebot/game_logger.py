"""Structured JSON-lines session logging with atexit cleanup.

One file per connection under config.LOG_DIR. All file I/O is wrapped in
try/except so a logging failure never takes the client down.
"""
import atexit
import json
import logging
import os
import time
from typing import Any

from settlebot import config

logger = logging.getLogger(__name__)


class GameLogger:
    """Records every line received, every command sent, and protocol anomalies.

    - start_session() opens a new file; a failure leaves logging disabled
    - end_session() is idempotent and registered with atexit
    """

    def __init__(self):
        self._file = None
        self._session_id = None
        self._sequence = 0
        atexit.register(self.end_session)

    @property
    def active(self) -> bool:
        return self._file is not None

    def start_session(self, name: str = "") -> None:
        """Open a new session log file, closing any previous one.

        Reads config.LOG_DIR at call time so tests can override it.
        """
        self.end_session()
        self._sequence += 1
        self._session_id = f"session_{int(time.time())}_{self._sequence}"
        log_dir = config.LOG_DIR
        filepath = os.path.join(log_dir, f"{self._session_id}.jsonl")
        try:
            os.makedirs(log_dir, exist_ok=True)
            self._file = open(filepath, "w")
            logger.info(f"Session log started: {filepath}")
        except OSError as e:
            logger.error(f"Failed to open log file {filepath}: {e}")
            self._file = None
            return
        self._write_entry({"direction": "meta", "ts": time.time(), "name": name})

    def log_incoming(self, model: str, raw: str) -> None:
        self._write_entry({
            "direction": "in",
            "type": model,
            "ts": time.time(),
            "raw": raw[:50000],
        })

    def log_outgoing(self, kind: str, data: Any) -> None:
        self._write_entry({
            "direction": "out",
            "type": kind,
            "ts": time.time(),
            "data": self._safe_serialize(data),
        })

    def log_protocol_event(self, event_type: str, details: str) -> None:
        """Unknown messages, handler failures and other anomalies."""
        self._write_entry({
            "direction": "event",
            "type": event_type,
            "ts": time.time(),
            "details": str(details)[:1000],
        })

    def _write_entry(self, entry: dict) -> None:
        if self._file is None:
            return
        try:
            self._file.write(json.dumps(entry) + "\n")
            self._file.flush()
        except (OSError, ValueError) as e:
            logger.error(f"Failed to write log entry: {e}")

    def _safe_serialize(self, obj: Any) -> Any:
        try:
            json.dumps(obj)
            return obj
        except (TypeError, ValueError):
            return str(obj)[:500]

    def end_session(self) -> None:
        """Close the log file. Idempotent - safe to call multiple times."""
        if self._file is not None:
            try:
                self._file.close()
                logger.info(f"Session log closed: {self._session_id}")
            except OSError as e:
                logger.error(f"Failed to close log file: {e}")
            finally:
                self._file = None
