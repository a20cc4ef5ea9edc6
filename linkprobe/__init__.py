"""linkprobe: check the links in Markdown, HTML and plain-text documents."""

__version__ = "0.1.0"

from linkprobe.config import Settings  # noqa: E402
from linkprobe.engine import check_documents, check_inputs, run  # noqa: E402
from linkprobe.errors import ConfigError, InputError, LinkProbeError  # noqa: E402
from linkprobe.models import (  # noqa: E402
    CheckResult,
    Document,
    DocumentFormat,
    FailureReason,
    Report,
    SkipReason,
    Status,
)

__all__ = [
    "Settings",
    "check_documents",
    "check_inputs",
    "run",
    "ConfigError",
    "InputError",
    "LinkProbeError",
    "CheckResult",
    "Document",
    "DocumentFormat",
    "FailureReason",
    "Report",
    "SkipReason",
    "Status",
]
