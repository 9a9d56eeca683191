# ---- robust logging: file + ring buffer ----
import logging
import pathlib
from collections import deque
from logging.handlers import RotatingFileHandler

import config

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class RingBufferHandler(logging.Handler):
    """Keeps the last N formatted log lines in memory for /api/logs."""

    def __init__(self, capacity=5000):
        super().__init__()
        self.buffer = deque(maxlen=capacity)

    def emit(self, record):
        try:
            self.buffer.append(self.format(record))
        except Exception:
            self.handleError(record)


_ring_buffer_handler = None


def setup_robust_logging(log_file=None, level=None):
    """Attach the rotating file handler and ring buffer to the root logger once"""
    global _ring_buffer_handler

    log_file = log_file or config.LOG_FILE
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level or config.LOG_LEVEL).upper(), logging.INFO))
    fmt = logging.Formatter(LOG_FORMAT)

    if not any(isinstance(h, logging.StreamHandler) and not isinstance(h, RotatingFileHandler)
               for h in root.handlers):
        sh = logging.StreamHandler()
        sh.setFormatter(fmt)
        root.addHandler(sh)

    if not any(isinstance(h, RotatingFileHandler) for h in root.handlers):
        pathlib.Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        fh.setFormatter(fmt)
        root.addHandler(fh)

    if _ring_buffer_handler is None:
        _ring_buffer_handler = RingBufferHandler()
        _ring_buffer_handler.setFormatter(fmt)
    if not any(h is _ring_buffer_handler for h in root.handlers):
        root.addHandler(_ring_buffer_handler)

    logging.info("Boot logging ready: file=%s + ring-buffer", log_file)


def get_ring_buffer_lines(n_lines=50, level_filter="all"):
    """Get recent lines from ring buffer with optional level filtering"""
    if not _ring_buffer_handler:
        return []

    def get_log_level(line):
        line_lower = line.lower()
        if "[error]" in line_lower or "[critical]" in line_lower:
            return 40
        elif "[warning]" in line_lower:
            return 30
        elif "[info]" in line_lower:
            return 20
        return 10

    level_thresholds = {"error": 40, "warn": 30, "warning": 30, "info": 20, "all": 0}
    min_level = level_thresholds.get(level_filter, 0)

    lines = list(_ring_buffer_handler.buffer)
    if level_filter != "all":
        lines = [line for line in lines if get_log_level(line) >= min_level]

    return lines[-n_lines:] if lines else []


def get_ring_buffer_stats():
    """Get ring buffer statistics"""
    if not _ring_buffer_handler:
        return {"available": False}

    return {
        "available": True,
        "current_size": len(_ring_buffer_handler.buffer),
        "max_capacity": _ring_buffer_handler.buffer.maxlen,
    }
