import asyncio
import logging
from typing import Any

from ..sandbox import Sandbox
from .files import _as_text

logger = logging.getLogger("remote_executor.shell")


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace") if data else ""


async def shell(sandbox: Sandbox, command: Any = None, **kwargs):
    """Run `command` through the system shell with cwd pinned to the sandbox root.

    The command is not restricted and there is no timeout: the response waits
    until the process exits and both streams are drained. A non-zero exit is
    reported in `error`/`exitCode`, never raised.
    """
    cmd = _as_text(command, "command")
    try:
        proc = await asyncio.create_subprocess_shell(
            cmd,
            cwd=str(sandbox.root),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        logger.warning(f"[SHELL] Spawn failed: {e}")
        return {"stdout": "", "stderr": "", "error": str(e), "exitCode": None}

    out, err = await proc.communicate()
    stdout, stderr = _decode(out), _decode(err)
    error = None
    if proc.returncode != 0:
        error = f"Command failed: {cmd}\n{stderr}"
    logger.info(f"[SHELL] exit={proc.returncode} stdout={len(stdout)} stderr={len(stderr)}")
    return {"stdout": stdout, "stderr": stderr, "error": error, "exitCode": proc.returncode}
