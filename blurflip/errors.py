"""
Failure taxonomy for the flip/blur pipeline.

Every error is fatal for the run: nothing here is retried. The CLI is the
only place that turns one of these into an exit status.
"""


class PipelineError(Exception):
    """Base class: the failing operation plus the platform diagnostic."""

    def __init__(self, operation, diagnostic=""):
        self.operation = operation
        self.diagnostic = diagnostic
        super().__init__(f"{operation}: {diagnostic}" if diagnostic else operation)


class ConfigError(PipelineError):
    """Invalid run parameters."""


class AllocationError(PipelineError):
    """Accelerator memory, context or queue could not be created."""


class TransferError(PipelineError):
    """Host <-> accelerator copy failed."""


class LaunchError(PipelineError):
    """Kernel build, configuration or execution failed."""


class ImageIOError(PipelineError):
    """Image source unreadable or image sink unwritable."""
