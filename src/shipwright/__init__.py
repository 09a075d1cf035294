# Load .env vars from file before everything else
from dotenv import load_dotenv

load_dotenv()

from .logger import setup_logging  # noqa: E402

setup_logging()

from .build.pipeline import ImagePipeline, PipelineResult, PipelineStatus  # noqa: E402
from .build.models import BuildContext, BuildInfo, BuildRequest, CIContext  # noqa: E402
from .build.tags import sanitize_tag  # noqa: E402

__all__ = [
    "BuildContext",
    "BuildInfo",
    "BuildRequest",
    "CIContext",
    "ImagePipeline",
    "PipelineResult",
    "PipelineStatus",
    "sanitize_tag",
]
