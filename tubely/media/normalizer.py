"""
Container rewrite for streaming (faststart).

The moov atom is moved to the front of the file so players can start
before the download finishes. Streams are copied, never re-encoded.
"""
import logging
import os
from typing import Protocol

from tubely.config import Settings
from tubely.errors import NormalizeFailed
from tubely.media.tools import run_tool
from tubely.utils.logging import log_tool_failure
from tubely.utils.metrics import external_tool_failures_total

logger = logging.getLogger(__name__)

PROCESSING_SUFFIX = ".processing"


class MediaNormalizer(Protocol):
    async def normalize(self, path: str) -> str: ...


def _remove_partial(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error(f"Failed to remove partial output {path}: {e}")


class FFmpegNormalizer:
    """MediaNormalizer backed by the ffmpeg executable."""

    def __init__(self, settings: Settings):
        self.binary = settings.ffmpeg_path

    async def normalize(self, path: str) -> str:
        """
        Write a faststart copy of ``path`` to ``path + ".processing"``.

        The output path is returned only when ffmpeg succeeded; otherwise any
        partial output is removed before raising.

        Raises:
            NormalizeFailed: If ffmpeg can't be launched or exits non-zero
        """
        output_path = path + PROCESSING_SUFFIX
        args = [
            self.binary,
            "-y",
            "-v", "error",
            "-i", path,
            "-c", "copy",
            "-movflags", "faststart",
            "-f", "mp4",
            output_path,
        ]
        try:
            result = await run_tool(args)
        except OSError as e:
            external_tool_failures_total.labels(tool="ffmpeg").inc()
            log_tool_failure(logger, tool="ffmpeg", path=path, stderr=str(e))
            raise NormalizeFailed(detail=str(e)) from e
        except BaseException:
            _remove_partial(output_path)
            raise

        if not result.ok:
            _remove_partial(output_path)
            external_tool_failures_total.labels(tool="ffmpeg").inc()
            log_tool_failure(logger, tool="ffmpeg", path=path, returncode=result.returncode, stderr=result.stderr_text())
            raise NormalizeFailed(
                detail=f"ffmpeg exited with {result.returncode}: {result.stderr_text()}"
            )

        logger.debug(f"Normalized {path} -> {output_path}")
        return output_path
