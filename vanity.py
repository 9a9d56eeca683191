"""
Vanity mint address search
Regenerates keypairs until the base58 address ends with a suffix (case-insensitive).
VanityJob runs the same search on a background thread so it can be polled and cancelled.
"""

import logging
import threading
import time
import uuid
from typing import Callable, Dict, Optional

from solders.keypair import Keypair

import config
from eventbus import BUS

logger = logging.getLogger(__name__)

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
PROGRESS_EVERY = 5000


class VanitySearchCancelled(Exception):
    pass


class VanitySearchExhausted(Exception):
    pass


class VanityJobsFull(Exception):
    pass


def _matches_per_char(ch: str) -> int:
    return sum(1 for a in BASE58_ALPHABET if a.lower() == ch.lower())


def validate_suffix(suffix: str) -> str:
    suffix = (suffix or "").strip()
    bad = [c for c in suffix if _matches_per_char(c) == 0]
    if bad:
        raise ValueError(f"Suffix contains characters that never appear in a base58 address: {''.join(bad)}")
    return suffix


def parse_max_attempts(value) -> Optional[int]:
    """None/"" means unbounded; anything else must be a positive integer"""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("max_attempts must be a positive integer")
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value < 1:
        raise ValueError("max_attempts must be a positive integer")
    return value


def expected_attempts(suffix: str) -> float:
    suffix = validate_suffix(suffix)
    expected = 1.0
    for ch in suffix:
        expected *= len(BASE58_ALPHABET) / _matches_per_char(ch)
    return expected


def generate_vanity_keypair(
    suffix: str,
    max_attempts: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
    progress: Optional[Callable[[int], None]] = None,
) -> Keypair:
    """Blocking search; unbounded unless max_attempts or cancel_event is given"""
    target = validate_suffix(suffix).lower()
    attempts = 0
    while True:
        keypair = Keypair()
        attempts += 1
        if str(keypair.pubkey()).lower().endswith(target):
            logger.info("Vanity match for '%s' after %d attempts: %s", suffix, attempts, keypair.pubkey())
            return keypair
        if max_attempts is not None and attempts >= max_attempts:
            raise VanitySearchExhausted(f"No address ending in '{suffix}' after {attempts} attempts")
        if attempts % PROGRESS_EVERY == 0:
            if cancel_event is not None and cancel_event.is_set():
                raise VanitySearchCancelled(f"Search for '{suffix}' cancelled after {attempts} attempts")
            if progress:
                progress(attempts)


class VanityJob:
    """Background vanity search with polling and cancellation"""

    def __init__(self, suffix: str, max_attempts: Optional[int] = None, bus=BUS):
        self.id = uuid.uuid4().hex[:8]
        self.suffix = validate_suffix(suffix)
        self.max_attempts = parse_max_attempts(max_attempts)
        self.bus = bus
        self.status = "pending"
        self.attempts = 0
        self.keypair: Optional[Keypair] = None
        self.error = ""
        self.started = 0.0
        self.finished = 0.0
        self._cancel = threading.Event()
        self._done = threading.Event()
        self._thread = threading.Thread(target=self._run, name=f"vanity-{self.id}", daemon=True)

    def start(self):
        self.status = "running"
        self.started = time.time()
        self._thread.start()
        self.bus.publish("vanity.started", {"job": self.id, "suffix": self.suffix})
        return self

    def _on_progress(self, attempts: int):
        self.attempts = attempts
        self.bus.publish("vanity.progress", {"job": self.id, "attempts": attempts})

    def _run(self):
        try:
            self.keypair = generate_vanity_keypair(
                self.suffix, self.max_attempts, self._cancel, self._on_progress
            )
            self.status = "found"
            self.bus.publish("vanity.found", {"job": self.id, "address": self.address})
        except VanitySearchCancelled:
            self.status = "cancelled"
            self.bus.publish("vanity.cancelled", {"job": self.id, "attempts": self.attempts})
        except VanitySearchExhausted as e:
            self.status = "failed"
            self.error = str(e)
            self.bus.publish("vanity.failed", {"job": self.id, "error": self.error})
        except Exception as e:
            logger.exception("Vanity job %s crashed", self.id)
            self.status = "failed"
            self.error = f"{type(e).__name__}: {e}"
            self.bus.publish("vanity.failed", {"job": self.id, "error": self.error})
        finally:
            self.finished = time.time()
            self._done.set()

    def cancel(self):
        self._cancel.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._done.wait(timeout)

    @property
    def done(self) -> bool:
        return self._done.is_set()

    @property
    def address(self) -> str:
        return str(self.keypair.pubkey()) if self.keypair else ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "suffix": self.suffix,
            "status": self.status,
            "attempts": self.attempts,
            "address": self.address,
            "error": self.error,
            "expected_attempts": round(expected_attempts(self.suffix)),
            "elapsed": round((self.finished or time.time()) - self.started, 2) if self.started else 0,
        }


class VanityJobs:
    """Registry of vanity jobs; finished jobs expire after ttl and are dropped once their keypair is used"""

    def __init__(self, bus=BUS, ttl: float = None, max_jobs: int = None):
        self.bus = bus
        self.ttl = config.VANITY_JOB_TTL if ttl is None else ttl
        self.max_jobs = config.MAX_VANITY_JOBS if max_jobs is None else max_jobs
        self._jobs: Dict[str, VanityJob] = {}
        self._lock = threading.Lock()

    def _drop(self, job: VanityJob):
        del self._jobs[job.id]
        job.keypair = None
        logger.info("Dropped vanity job %s (%s)", job.id, job.status)

    def _evict(self):
        """Drop finished jobs older than ttl; caller holds the lock"""
        now = time.time()
        for job in list(self._jobs.values()):
            if job.done and now - job.finished >= self.ttl:
                self._drop(job)

    def start(self, suffix: str, max_attempts: Optional[int] = None) -> VanityJob:
        job = VanityJob(suffix, max_attempts=max_attempts, bus=self.bus)
        with self._lock:
            self._evict()
            finished = sorted((j for j in self._jobs.values() if j.done), key=lambda j: j.finished)
            while len(self._jobs) >= self.max_jobs and finished:
                self._drop(finished.pop(0))
            if len(self._jobs) >= self.max_jobs:
                raise VanityJobsFull(f"Too many vanity searches running (max {self.max_jobs})")
            self._jobs[job.id] = job
        logger.info("Started vanity job %s for suffix '%s'", job.id, job.suffix)
        return job.start()

    def get(self, job_id: str) -> Optional[VanityJob]:
        with self._lock:
            self._evict()
            return self._jobs.get(job_id)

    def cancel(self, job_id: str) -> Optional[VanityJob]:
        job = self.get(job_id)
        if job:
            job.cancel()
        return job

    def found_keypair(self, job_id: str) -> Keypair:
        job = self.get(job_id)
        if job is None:
            raise KeyError(f"Unknown vanity job {job_id}")
        keypair = job.keypair
        if job.status != "found" or keypair is None:
            raise ValueError(f"Vanity job {job_id} has no keypair ({job.status})")
        return keypair

    def discard(self, job_id: str) -> bool:
        """Forget a job once its keypair has minted a token"""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return False
            self._drop(job)
        return True

    def __len__(self):
        with self._lock:
            return len(self._jobs)
