"""
External media tool invocation.

Tools (ffprobe, ffmpeg) run as child processes via asyncio. There is no
internal timeout: the deployment bounds request time. If the awaiting task
is cancelled (client disconnect, server shutdown) the child is killed and
reaped before the cancellation propagates.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one tool invocation."""
    args: tuple
    returncode: int
    stdout: bytes
    stderr: bytes

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def stderr_text(self, limit: int = 2000) -> str:
        return self.stderr.decode("utf-8", errors="replace")[-limit:]


async def run_tool(args: Sequence[str]) -> ToolResult:
    """
    Run a tool to completion and capture its output.

    Raises:
        OSError: If the executable can't be launched (e.g. not installed)
    """
    logger.debug(f"Running {' '.join(args)}")
    proc = await asyncio.create_subprocess_exec(
        *args,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await proc.communicate()
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.kill()
            await proc.wait()
        logger.warning(f"Cancelled {args[0]} (pid {proc.pid})")
        raise

    return ToolResult(
        args=tuple(args),
        returncode=proc.returncode,
        stdout=stdout,
        stderr=stderr,
    )
