"""
Media inspection via ffprobe.

Only stream geometry matters to the pipeline: the first stream's display
aspect ratio decides the storage key prefix.
"""
import json
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from tubely.config import Settings
from tubely.errors import ProbeFailed
from tubely.media.tools import run_tool
from tubely.utils.logging import log_tool_failure
from tubely.utils.metrics import external_tool_failures_total

logger = logging.getLogger(__name__)

LANDSCAPE = "landscape"
PORTRAIT = "portrait"
OTHER = "other"


def classify_aspect_ratio(aspect_ratio: Optional[str]) -> str:
    """
    Map a display aspect ratio to a key prefix.

    Exact "16:9" is landscape, exact "9:16" is portrait, anything else
    (including None or garbage) is other.
    """
    if aspect_ratio == "16:9":
        return LANDSCAPE
    if aspect_ratio == "9:16":
        return PORTRAIT
    return OTHER


@dataclass(frozen=True)
class MediaProbe:
    """Inspection result for one staged file."""
    aspect_ratio: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    codec_name: Optional[str] = None

    @property
    def classification(self) -> str:
        return classify_aspect_ratio(self.aspect_ratio)


def parse_probe_output(stdout: bytes) -> MediaProbe:
    """
    Build a MediaProbe from ffprobe's JSON output.

    Raises:
        ProbeFailed: If the output isn't JSON or lists no streams
    """
    try:
        data = json.loads(stdout)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ProbeFailed(detail=f"unparsable ffprobe output: {e}") from e

    streams = data.get("streams") if isinstance(data, dict) else None
    if not isinstance(streams, list) or not streams:
        raise ProbeFailed(detail="ffprobe reported no streams")

    first = streams[0] if isinstance(streams[0], dict) else {}
    ratio = first.get("display_aspect_ratio")
    return MediaProbe(
        aspect_ratio=ratio if isinstance(ratio, str) else None,
        width=_as_int(first.get("width")),
        height=_as_int(first.get("height")),
        codec_name=first.get("codec_name"),
    )


def _as_int(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class MediaInspector(Protocol):
    async def probe(self, path: str) -> MediaProbe: ...


class FFprobeInspector:
    """MediaInspector backed by the ffprobe executable."""

    def __init__(self, settings: Settings):
        self.binary = settings.ffprobe_path

    async def probe(self, path: str) -> MediaProbe:
        args = [
            self.binary,
            "-v", "error",
            "-print_format", "json",
            "-show_streams",
            path,
        ]
        try:
            result = await run_tool(args)
        except OSError as e:
            external_tool_failures_total.labels(tool="ffprobe").inc()
            log_tool_failure(logger, tool="ffprobe", path=path, stderr=str(e))
            raise ProbeFailed(detail=str(e)) from e

        if not result.ok:
            external_tool_failures_total.labels(tool="ffprobe").inc()
            log_tool_failure(logger, tool="ffprobe", path=path, returncode=result.returncode, stderr=result.stderr_text())
            raise ProbeFailed(
                detail=f"ffprobe exited with {result.returncode}: {result.stderr_text()}"
            )

        probe = parse_probe_output(result.stdout)
        logger.debug(f"Probed {path}: aspect_ratio={probe.aspect_ratio} -> {probe.classification}")
        return probe
