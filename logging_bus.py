import json
import queue
import threading
import time
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, List, Optional


@dataclass
class LogEvent:
    ts: float
    level: str   # "INFO","WARN","ERROR"
    kind: str    # "TASKS","TIMER","CHAT","NETWORK","STORE","ALERT","SYSTEM"
    msg: str
    meta: Dict[str, Any]


KINDS = ("TASKS", "TIMER", "CHAT", "NETWORK", "STORE", "ALERT", "SYSTEM")

_listeners: List[Callable[[LogEvent], None]] = []
_lock = threading.Lock()
_verbose = True
_level_filter: Dict[str, bool] = {"INFO": True, "WARN": True, "ERROR": True}
_kind_filter: Dict[str, bool] = {k: True for k in KINDS}
_ring: List[LogEvent] = []
_ring_limit = 2000

_file_path: Optional[str] = None
_file_q: "queue.Queue[LogEvent]" = queue.Queue()
_writer: Optional[threading.Thread] = None


def emit(level: str, kind: str, msg: str, **meta: Any) -> None:
    """Record an event and hand it to every subscriber.

    Subscribers run on the emitting thread; UI listeners are expected to
    marshal onto their own loop.
    """
    _level_filter.setdefault(level, True)
    _kind_filter.setdefault(kind, True)
    if not _level_filter[level] or not _kind_filter[kind]:
        return
    if not _verbose and level == "INFO" and kind != "SYSTEM":
        return
    evt = LogEvent(time.time(), level, kind, msg, meta)
    with _lock:
        _ring.append(evt)
        if len(_ring) > _ring_limit:
            del _ring[0 : len(_ring) - _ring_limit]
        listeners = list(_listeners)
    for cb in listeners:
        try:
            cb(evt)
        except Exception:
            pass
    if _file_path:
        _file_q.put(evt)


def subscribe(callback: Callable[[LogEvent], None]) -> None:
    with _lock:
        _listeners.append(callback)


def unsubscribe(callback: Callable[[LogEvent], None]) -> None:
    with _lock:
        if callback in _listeners:
            _listeners.remove(callback)


def _file_loop() -> None:
    fp = None
    path = None
    while True:
        evt = _file_q.get()
        try:
            if _file_path != path and fp:
                fp.close()
                fp = None
            path = _file_path
            if path:
                if fp is None:
                    fp = open(path, "a", encoding="utf-8")
                fp.write(json.dumps(asdict(evt), ensure_ascii=False, default=str) + "\n")
                fp.flush()
        except OSError:
            fp = None


def set_file_logger(path: Optional[str]) -> None:
    """Mirror events to ``path`` as JSON lines; ``None`` stops mirroring."""
    global _file_path, _writer
    _file_path = path
    if path and _writer is None:
        _writer = threading.Thread(target=_file_loop, daemon=True)
        _writer.start()


def set_verbose(v: bool) -> None:
    global _verbose
    _verbose = v


def set_log_level_filter(levels: Dict[str, bool]) -> None:
    _level_filter.update(levels)


def set_kind_filter(kinds: Dict[str, bool]) -> None:
    _kind_filter.update(kinds)


def set_ring_limit(n: int) -> None:
    global _ring_limit
    _ring_limit = max(200, int(n))


def snapshot() -> List[LogEvent]:
    with _lock:
        return list(_ring)


def clear() -> None:
    with _lock:
        _ring.clear()


__all__ = [
    "LogEvent",
    "KINDS",
    "emit",
    "subscribe",
    "unsubscribe",
    "set_file_logger",
    "set_verbose",
    "set_log_level_filter",
    "set_kind_filter",
    "set_ring_limit",
    "snapshot",
    "clear",
]
