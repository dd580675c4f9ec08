import asyncio
import os
from typing import Any

from ..errors import InternalError
from ..sandbox import Sandbox, SandboxedPath


def _as_text(value: Any, field: str) -> str:
    if value is None or value == "":
        return ""
    if not isinstance(value, str):
        raise InternalError(f"{field} must be a string")
    return value


def _write(target: SandboxedPath, content: str) -> int:
    target.path.parent.mkdir(parents=True, exist_ok=True)
    # newline="" keeps the caller's line endings byte for byte
    with open(target, "w", encoding="utf-8", newline="") as f:
        f.write(content)
    return len(content.encode("utf-8"))


def _read(target: SandboxedPath) -> str:
    with open(target, "r", encoding="utf-8", newline="") as f:
        return f.read()


async def write_file(sandbox: Sandbox, path: Any = None, content: Any = None, **kwargs):
    text = _as_text(content, "content")
    target = sandbox.resolve(path)
    try:
        nbytes = await asyncio.to_thread(_write, target, text)
    except OSError as e:
        raise InternalError(str(e)) from e
    return {
        "success": True,
        "message": f"File written to {target.relative}",
        "contentLength": len(text),
        "bytes": nbytes,
    }


async def read_file(sandbox: Sandbox, path: Any = None, **kwargs):
    target = sandbox.resolve(path)
    try:
        content = await asyncio.to_thread(_read, target)
    except OSError as e:
        raise InternalError(str(e)) from e
    except UnicodeDecodeError as e:
        raise InternalError(f"File is not valid UTF-8 text: {e}") from e
    return {"success": True, "content": content}


async def list_dir(sandbox: Sandbox, path: Any = None, **kwargs):
    target = sandbox.resolve(path)
    try:
        names = await asyncio.to_thread(os.listdir, target)
    except OSError as e:
        raise InternalError(str(e)) from e
    return {"success": True, "files": sorted(names)}
