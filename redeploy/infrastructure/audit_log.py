"""
Audit Log

Architectural Intent:
- File-backed implementation of AuditLogPort
- One timestamped line per deployment milestone: [YYYY-MM-DD HH:MM:SS] message
- Write failures are logged and swallowed; an unwritable log never fails a deployment
"""

import logging
import os
import threading
from collections import deque
from datetime import datetime
from typing import List

logger = logging.getLogger(__name__)

DEFAULT_LOG_FILE = "deployment.log"


class AuditLog:
    def __init__(self, path: str = DEFAULT_LOG_FILE) -> None:
        self.path = path
        self._lock = threading.Lock()

    def write(self, message: str) -> None:
        line = f"[{datetime.now():%Y-%m-%d %H:%M:%S}] {message}\n"
        try:
            with self._lock:
                directory = os.path.dirname(self.path)
                if directory:
                    os.makedirs(directory, exist_ok=True)
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(line)
        except OSError as e:
            logger.warning("Failed to write audit log %s: %s", self.path, e)

    def tail(self, lines: int = 50) -> List[str]:
        if lines <= 0:
            return []
        try:
            with open(self.path, encoding="utf-8") as f:
                return [line.rstrip("\n") for line in deque(f, maxlen=lines)]
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.warning("Failed to read audit log %s: %s", self.path, e)
            return []
