"""Concurrent dispatch of conversion jobs with shared totals and cancellation."""

import logging
import tempfile
import threading
import time
from dataclasses import dataclass
from pathlib import Path

from ..config import RomcompConfig
from ..formats.capability import RomCapability
from ..formats.tools import output_path
from .files import FilePlanner
from .job import ConversionJob, JobResult, JobState

logger = logging.getLogger(__name__)


class CancellationSignal:
    """Fire-once flag shared by the scheduler and every job. Never reset."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def fire(self) -> None:
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds; True as soon as the signal has fired."""
        return self._event.wait(timeout)


@dataclass(frozen=True)
class ConversionSummary:
    """Totals of one run, read after the scheduler has drained."""

    processed: int = 0
    skipped: int = 0
    input_bytes: int = 0
    output_bytes: int = 0

    @property
    def total(self) -> int:
        return self.processed + self.skipped

    @property
    def bytes_saved(self) -> int:
        return self.input_bytes - self.output_bytes

    @property
    def percent_saved(self) -> float:
        if self.input_bytes == 0:
            return 0.0
        return 100.0 - (self.output_bytes * 100.0 / self.input_bytes)


class ConversionScheduler:
    """Runs conversion jobs on their own threads, at most ``config.threads`` at once.

    ``submit`` blocks until a slot is free and hands the job to a new thread.
    Each job folds its measurements into the totals once, when it ends;
    nothing else is shared between jobs. Call ``drain`` before reading
    ``summary``.
    """

    def __init__(
        self,
        config: RomcompConfig,
        *,
        root: Path | None = None,
        cancel: CancellationSignal | None = None,
    ):
        self.config = config
        self.root = root
        self.cancel = cancel or CancellationSignal()

        self._lock = threading.Lock()
        self._running = 0
        self._processed = 0
        self._skipped = 0
        self._input_bytes = 0
        self._output_bytes = 0

        if config.scratch_dir is not None:
            config.scratch_dir.mkdir(parents=True, exist_ok=True)
        self._scratch = tempfile.TemporaryDirectory(prefix="romcomp-", dir=config.scratch_dir)
        self.planner = FilePlanner(
            Path(self._scratch.name),
            verify_tracks=config.verify_cue_tracks,
        )

    def __enter__(self) -> "ConversionScheduler":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.drain()
        self.close()

    @property
    def running(self) -> int:
        with self._lock:
            return self._running

    def submit(self, path: Path, capability: RomCapability) -> bool:
        """Start converting ``path`` once a slot is free.

        Returns False without starting anything when the output already
        exists (counted as skipped) or when cancellation fires while waiting.
        """
        target = output_path(path, capability, verify_tracks=self.config.verify_cue_tracks)
        if target is not None and target.is_file():
            with self._lock:
                self._skipped += 1
            logger.debug(f"Skipping {path}: Target file already exists")
            return False

        while self.running >= self.config.threads:
            if self.cancel.wait(self.config.poll_interval):
                return False

        if self.cancel.is_set():
            return False

        job = ConversionJob(
            path,
            capability,
            self.config,
            self.planner,
            self.cancel,
            root=self.root,
        )

        with self._lock:
            self._running += 1

        thread = threading.Thread(
            target=self._run_job,
            args=(job,),
            name=f"romcomp-{path.name}",
        )
        try:
            thread.start()
        except RuntimeError:
            with self._lock:
                self._running -= 1
            raise

        return True

    def _run_job(self, job: ConversionJob) -> None:
        result: JobResult | None = None
        try:
            result = job.run()
        except Exception as e:
            logger.exception(f"Conversion of {job.source} failed: {e}")
        finally:
            with self._lock:
                if result is not None:
                    self._fold(result)
                self._running -= 1

    def _fold(self, result: JobResult) -> None:
        # Caller holds the lock
        if result.state == JobState.COMPLETED:
            self._processed += 1
            self._input_bytes += result.input_size
            self._output_bytes += result.output_size
        elif result.state == JobState.SKIPPED:
            self._skipped += 1

    def drain(self) -> None:
        """Block until every started job has finished."""
        while self.running > 0:
            time.sleep(self.config.poll_interval)

    def summary(self) -> ConversionSummary:
        with self._lock:
            return ConversionSummary(
                processed=self._processed,
                skipped=self._skipped,
                input_bytes=self._input_bytes,
                output_bytes=self._output_bytes,
            )

    def close(self) -> None:
        """Remove the scratch directory used for staging copies."""
        self._scratch.cleanup()
