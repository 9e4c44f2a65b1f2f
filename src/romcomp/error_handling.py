"""Error types and user-facing error reporting for romcomp."""

import logging
import shutil
from enum import Enum
from pathlib import Path

from rich.console import Console

from .formats.capability import RomCapability
from .formats.tools import required_tools

logger = logging.getLogger(__name__)
console = Console()


class ErrorCategory(Enum):
    """Categories of errors for better user experience."""

    CONFIGURATION = "configuration"
    DEPENDENCY = "dependency"
    FILESYSTEM = "filesystem"
    MEDIA = "media"
    EXTERNAL_TOOL = "external_tool"
    SYSTEM = "system"


class RomcompError(Exception):
    """Base exception for romcomp with enhanced user experience."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory,
        *,
        solution: str | None = None,
        details: str | None = None,
        recoverable: bool = True,
        log_level: int = logging.ERROR,
        original_error: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.solution = solution
        self.details = details
        self.recoverable = recoverable
        self.log_level = log_level
        self.original_error = original_error

    def display_to_user(self) -> None:
        """Display error to user with helpful context."""
        category_styles = {
            ErrorCategory.CONFIGURATION: ("⚙️", "yellow"),
            ErrorCategory.DEPENDENCY: ("📦", "red"),
            ErrorCategory.FILESYSTEM: ("📁", "red"),
            ErrorCategory.MEDIA: ("💾", "blue"),
            ErrorCategory.EXTERNAL_TOOL: ("🔧", "red"),
            ErrorCategory.SYSTEM: ("💻", "red"),
        }

        emoji, color = category_styles.get(self.category, ("❌", "red"))

        console.print(
            f"\n{emoji} [{color} bold]{self.category.value.replace('_', ' ').title()} Error[/{color} bold]",
        )
        console.print(f"[{color}]{self.message}[/{color}]")

        if self.details:
            console.print(f"\n[dim]Details:[/dim] {self.details}")

        if self.solution:
            console.print(f"\n[green]💡 Solution:[/green] {self.solution}")

        if self.recoverable:
            console.print(
                "\n[dim]This error may be temporary. You can try again.[/dim]",
            )
        else:
            console.print(
                "\n[dim]This error requires intervention before continuing.[/dim]",
            )

        if self.original_error:
            logger.log(
                self.log_level,
                "%s: %s",
                self.category.value,
                self.message,
                exc_info=self.original_error,
            )
        else:
            logger.log(self.log_level, "%s: %s", self.category.value, self.message)


class ConfigurationError(RomcompError):
    """Configuration-related errors."""

    def __init__(self, message: str, *, config_path: Path | None = None, **kwargs):
        solution = kwargs.pop("solution", None)
        if not solution and config_path:
            solution = f"Check your configuration file at {config_path}"
        super().__init__(
            message,
            ErrorCategory.CONFIGURATION,
            solution=solution,
            **kwargs,
        )


class DependencyError(RomcompError):
    """A required external tool is not on PATH."""

    def __init__(
        self,
        dependency: str,
        *,
        install_url: str | None = None,
        **kwargs,
    ):
        message = f"Required tool '{dependency}' is not available on your PATH"
        solution = kwargs.pop("solution", None)
        if not solution and install_url:
            solution = f"Install it from {install_url}, or run romcomp from its Docker image"
        super().__init__(
            message,
            ErrorCategory.DEPENDENCY,
            solution=solution,
            recoverable=False,
            **kwargs,
        )
        self.dependency = dependency


class UnrecognizedRomError(RomcompError):
    """The given file is not a recognized image for the selected platform."""

    def __init__(self, path: Path, platform: str, **kwargs):
        solution = kwargs.pop(
            "solution",
            "Check the file extension, and for .bin images that a matching .cue sheet sits next to it",
        )
        super().__init__(
            f"{path} isn't recognized as a {platform} ROM",
            ErrorCategory.MEDIA,
            solution=solution,
            recoverable=False,
            **kwargs,
        )


class ExternalToolError(RomcompError):
    """External tool execution errors."""

    def __init__(
        self,
        tool: str,
        exit_code: int | None = None,
        stderr: str | None = None,
        **kwargs,
    ):
        message = f"{tool} failed"
        if exit_code is not None:
            message += f" with exit code {exit_code}"

        details = kwargs.pop("details", stderr)
        solution = kwargs.pop(
            "solution",
            f"Check {tool} is properly installed and the input file is intact",
        )

        super().__init__(
            message,
            ErrorCategory.EXTERNAL_TOOL,
            details=details,
            solution=solution,
            **kwargs,
        )
        self.exit_code = exit_code


def handle_error(
    error: Exception,
    *,
    category: ErrorCategory | None = None,
    **kwargs,
) -> None:
    """Convert generic exceptions to RomcompError and display to user."""
    if isinstance(error, RomcompError):
        error.display_to_user()
        return

    if category is None:
        if isinstance(error, FileNotFoundError | PermissionError):
            category = ErrorCategory.FILESYSTEM
        else:
            category = ErrorCategory.SYSTEM

    romcomp_error = RomcompError(
        message=str(error) or "An unexpected error occurred",
        category=category,
        original_error=error,
        **kwargs,
    )
    romcomp_error.display_to_user()


def check_dependencies(platform: RomCapability) -> list[DependencyError]:
    """Check the external tools a target platform needs and return what is missing."""
    errors = []

    for tool in required_tools(platform):
        if not shutil.which(tool.binary):
            errors.append(
                DependencyError(
                    tool.binary,
                    install_url=tool.install_url,
                    details=f"{tool.name} is required for {tool.description}",
                ),
            )

    return errors
