"""A single ROM conversion: plan the files, run the tool, package, clean up."""

import logging
import subprocess
import tempfile
import zipfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from ..config import RomcompConfig
from ..error_handling import ExternalToolError
from ..formats.capability import RomCapability
from ..formats.tools import CARTRIDGES, ToolInvocation, output_path, resolve_tool, tool_input
from .files import FilePlanner, FileRole, ManagedFile, cleanup, first_with_role, size_on_disk
from .flatten import flatten_directories

if TYPE_CHECKING:
    from .scheduler import CancellationSignal

logger = logging.getLogger(__name__)


class JobState(Enum):
    """Lifecycle of a conversion job."""

    PLANNED = "planned"
    RUNNING = "running"
    COMPLETED = "completed"
    INTERRUPTED = "interrupted"  # cancelled, or the tool failed
    SKIPPED = "skipped"  # output already existed


@dataclass
class JobResult:
    """What a finished job reports back to the scheduler."""

    source: Path
    state: JobState
    output_file: Path | None = None
    input_size: int = 0
    output_size: int = 0
    error_message: str | None = None

    @property
    def size_reduction_percent(self) -> float:
        """Calculate size reduction percentage."""
        if self.input_size == 0:
            return 0.0
        return ((self.input_size - self.output_size) / self.input_size) * 100

    def __str__(self) -> str:
        if self.state == JobState.COMPLETED and self.output_file:
            return f"Compressed {self.source.name} -> {self.output_file.name} ({self.size_reduction_percent:.1f}% reduction)"
        if self.state == JobState.SKIPPED:
            return f"Skipped {self.source.name}: target file already exists"
        return f"Failed to compress {self.source.name}: {self.error_message}"


class ConversionJob:
    """Converts one ROM. Owned by exactly one thread for its whole life."""

    def __init__(
        self,
        source: Path,
        capability: RomCapability,
        config: RomcompConfig,
        planner: FilePlanner,
        cancel: "CancellationSignal",
        root: Path | None = None,
    ):
        self.source = source
        self.capability = capability
        self.config = config
        self.planner = planner
        self.cancel = cancel
        self.root = root

        self.state = JobState.PLANNED
        self.files: list[ManagedFile] = []
        self.input_size = 0
        self.output_size = 0
        self.error_message: str | None = None
        self.output_file = output_path(
            source,
            capability,
            verify_tracks=config.verify_cue_tracks,
        )

    def run(self) -> JobResult:
        """Run the conversion to a terminal state and return its measurements."""
        if self.output_file is None:
            self.error_message = f"No output format known for {self.source}"
            logger.warning(self.error_message)
            return self._result(JobState.INTERRUPTED)

        if self.output_file.exists():
            logger.debug(f"Skipping {self.source}: Target file already exists")
            return self._result(JobState.SKIPPED)

        self.state = JobState.RUNNING
        logger.info(f"Beginning compression of {self.source}...")

        interrupted = True
        try:
            interrupted = not self._convert(self.output_file)
        except ExternalToolError as e:
            self.error_message = e.message
            if e.details:
                logger.debug(f"{self.source}: {e.details}")
        except Exception as e:
            self.error_message = f"Unexpected error during compression: {e}"
            logger.exception(self.error_message)
        finally:
            self.output_size = size_on_disk(self.output_file)
            cleanup(
                self.files,
                remove_inputs=self.config.remove_after_compression,
                interrupted=interrupted,
            )

        if interrupted:
            reason = f": {self.error_message}" if self.error_message else ""
            logger.warning(f"Aborted compression of {self.output_file}{reason}")
            return self._result(JobState.INTERRUPTED)

        if self.config.flatten and self.root is not None:
            self.output_file = flatten_directories(self.output_file, self.root)

        logger.info(f"Finished compression of {self.output_file}")
        return self._result(JobState.COMPLETED)

    def _convert(self, output_file: Path) -> bool:
        try:
            self.files = self.planner.plan(self.source, self.capability)
        except ValueError as e:
            self.error_message = str(e)
            return False

        self.input_size = sum(
            size_on_disk(f.path) for f in self.files if f.role == FileRole.INPUT
        )
        self.files.append(ManagedFile(output_file, FileRole.OUTPUT))

        invocation = resolve_tool(self.capability, self.config)
        if invocation is not None and not self._run_tool(invocation, output_file):
            return False

        if self.capability & CARTRIDGES:
            return self._package(output_file)

        return True

    def _tool_input(self) -> Path:
        if RomCapability.NINTENDO_DS in self.capability:
            staged = first_with_role(self.files, FileRole.TEMPORARY)
            if staged is not None:
                return staged
        return tool_input(
            self.source,
            self.capability,
            verify_tracks=self.config.verify_cue_tracks,
        ) or self.source

    def _run_tool(self, invocation: ToolInvocation, output_file: Path) -> bool:
        """Run the external tool, polling for exit or cancellation.

        Returns False when cancelled; raises ExternalToolError when the tool
        can't be started or exits non-zero.
        """
        cmd = invocation.argv(self._tool_input(), output_file)
        logger.debug(f"Running: {' '.join(cmd)}")

        with tempfile.TemporaryFile() as stderr:
            try:
                process = subprocess.Popen(
                    cmd,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.DEVNULL,
                    stderr=stderr,
                    cwd=Path.cwd(),
                )
            except OSError as e:
                raise ExternalToolError(
                    invocation.program,
                    details=f"Failed to start {invocation.program}: {e}",
                    original_error=e,
                ) from e

            while process.poll() is None:
                if self.cancel.wait(self.config.poll_interval):
                    process.kill()
                    process.wait()
                    self.error_message = "Interrupted"
                    return False

            if process.returncode != 0:
                stderr.seek(0)
                output = stderr.read().decode(errors="replace").strip()
                raise ExternalToolError(invocation.program, process.returncode, output or None)

        return True

    def _package(self, output_file: Path) -> bool:
        """Zip the converted (or staged) cartridge image into the output file."""
        source = first_with_role(self.files, FileRole.TEMPORARY) or first_with_role(
            self.files,
            FileRole.INPUT,
        )
        if source is None:
            self.error_message = "Nothing to package"
            return False

        logger.debug(f"Zipping {source} to {output_file}")

        try:
            info = zipfile.ZipInfo.from_file(source, arcname=source.name)
            info.compress_type = zipfile.ZIP_DEFLATED
            with (
                open(source, "rb") as reader,
                zipfile.ZipFile(output_file, "w") as archive,
                archive.open(info, "w", force_zip64=True) as entry,
            ):
                while True:
                    if self.cancel.is_set():
                        self.error_message = "Interrupted"
                        return False
                    chunk = reader.read(self.config.chunk_size)
                    if not chunk:
                        break
                    entry.write(chunk)
        except (OSError, zipfile.BadZipFile) as e:
            self.error_message = f"Failed to write {output_file}: {e}"
            return False

        return True

    def _result(self, state: JobState) -> JobResult:
        self.state = state
        return JobResult(
            source=self.source,
            state=state,
            output_file=self.output_file,
            input_size=self.input_size,
            output_size=self.output_size,
            error_message=self.error_message,
        )
