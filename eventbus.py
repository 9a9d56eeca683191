# eventbus.py
from __future__ import annotations
import time, threading, queue
from collections import deque


class EventBus:
    """Status fan-out for the UI: launch progress, vanity jobs, clone results."""

    def __init__(self, history=200):
        self.recent = deque(maxlen=history)
        self.subscribers = set()
        self.lock = threading.Lock()

    def publish(self, typ: str, payload: dict | None = None):
        evt = {
            "ts": int(time.time() * 1000),
            "type": typ,
            "data": payload or {},
        }
        # fanout to live subscribers (non-blocking)
        with self.lock:
            self.recent.append(evt)
            dead = []
            for s in list(self.subscribers):
                try: s.put_nowait(evt)
                except queue.Full:
                    dead.append(s)
            for s in dead:
                self.subscribers.discard(s)
        return evt

    def subscribe(self):
        q = queue.Queue(maxsize=500)
        with self.lock: self.subscribers.add(q)
        return q

    def unsubscribe(self, q):
        with self.lock: self.subscribers.discard(q)

    def get_recent(self, limit=20, typ: str | None = None):
        with self.lock:
            events = [e for e in self.recent if typ is None or e["type"].startswith(typ)]
        return events[-limit:]


BUS = EventBus()
