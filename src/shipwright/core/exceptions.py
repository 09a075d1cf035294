"""Custom exceptions for shipwright.

Engine failures are raised as ``EngineCommandError``; the pipeline wraps them
into a ``PipelineStepError`` subclass naming the step that failed.
"""

from typing import Optional, Sequence


class ShipwrightError(Exception):
    """Base exception for all shipwright errors."""

    pass


class EngineCommandError(ShipwrightError):
    """Raised when a container engine command exits unsuccessfully."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: Optional[int],
        stderr: str = "",
    ):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or "no output"
        super().__init__(
            f"'{' '.join(self.command)}' failed with exit code {returncode}: {detail}"
        )


class PipelineStepError(ShipwrightError):
    """Base exception for a fatal pipeline step failure."""

    step = "pipeline"

    def __init__(self, message: str, image: Optional[str] = None):
        self.image = image
        super().__init__(message)


class BuildFailure(PipelineStepError):
    """Raised when the image build fails."""

    step = "build"


class FlattenFailure(PipelineStepError):
    """Raised when flattening the built image fails."""

    step = "flatten"


class InfoWriteFailure(PipelineStepError):
    """Raised when build info cannot be resolved or written."""

    step = "build-info"


class TagFailure(PipelineStepError):
    """Raised when tagging the image fails."""

    step = "tag"

    def __init__(self, message: str, image: Optional[str] = None, tags: Sequence[str] = ()):
        self.tags = list(tags)
        super().__init__(message, image=image)


class PushFailure(PipelineStepError):
    """Raised when pushing one or more tags fails."""

    step = "push"


class ImageFileWriteFailure(PipelineStepError):
    """Raised when the image metadata file cannot be written."""

    step = "image-file"
