# remote_executor/dispatcher.py
import hmac
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel, ConfigDict

from .errors import BadRequest, Forbidden, GatewayError, InternalError
from .sandbox import Sandbox
from .tools import build_registry

logger = logging.getLogger("remote_executor.api")


class RequestParams(BaseModel):
    """Flat per-request parameter record, whatever transport carried it.

    Values are left untyped: a non-string path is treated as "no path" by the
    resolver, and a non-string token never authenticates.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    token: Any = None
    action: Any = None
    path: Any = None
    content: Any = None
    command: Any = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RequestParams":
        return cls(**{k: data[k] for k in cls.model_fields if k in data})


@dataclass(frozen=True)
class ActionResult:
    ok: bool
    payload: Any = None
    kind: Optional[str] = None
    message: Optional[str] = None
    status_code: int = 200

    @classmethod
    def success(cls, payload: Any) -> "ActionResult":
        return cls(ok=True, payload=payload)

    @classmethod
    def failure(cls, error: GatewayError) -> "ActionResult":
        return cls(ok=False, kind=error.kind, message=error.message, status_code=error.status_code)


def error_response(error: GatewayError) -> JSONResponse:
    return JSONResponse({"error": error.message}, status_code=error.status_code)


class Dispatcher:
    """Authenticates a request, runs its action and shapes the HTTP response."""

    def __init__(self, sandbox: Sandbox, secret_token: str, allow_shell: bool = True):
        self.sandbox = sandbox
        self._secret = secret_token.encode("utf-8")
        self.registry = build_registry(allow_shell)

    def _authenticated(self, token: Any) -> bool:
        if not isinstance(token, str):
            return False
        return hmac.compare_digest(token.encode("utf-8"), self._secret)

    async def execute(self, params: RequestParams) -> ActionResult:
        try:
            if not self._authenticated(params.token):
                logger.warning(f"[API] Rejected token for action={params.action!r}")
                raise Forbidden("Forbidden")
            if not params.action:
                raise BadRequest("Action required")
            tool = self.registry.get(params.action) if isinstance(params.action, str) else None
            if tool is None:
                raise BadRequest("Invalid action")

            if params.action == "write_file":
                length = len(params.content) if isinstance(params.content, str) else 0
                logger.info(f"[API] Action: write_file, Path: {params.path}, Content Length: {length}")
            else:
                logger.info(f"[API] Action: {params.action}, Path: {params.path}")

            payload = await tool(
                self.sandbox,
                path=params.path,
                content=params.content,
                command=params.command,
            )
        except (Forbidden, BadRequest) as e:
            return ActionResult.failure(e)
        except GatewayError as e:
            return self._failed(params, ActionResult.failure(e))
        except Exception as e:
            return self._failed(params, ActionResult.failure(InternalError(str(e))))
        return ActionResult.success(payload)

    def _failed(self, params: RequestParams, result: ActionResult) -> ActionResult:
        # called from inside an except block, so the traceback is logged too
        logger.exception(f"[API] {params.action} failed ({result.kind}): {result.message}")
        return result

    def to_response(self, action: Any, result: ActionResult, raw_text: bool = False) -> Response:
        if not result.ok:
            return JSONResponse({"error": result.message}, status_code=result.status_code)
        if action == "read_file" and raw_text:
            return PlainTextResponse(result.payload["content"])
        return JSONResponse(result.payload, status_code=200)

    async def handle(self, params: RequestParams, raw_text: bool = False) -> Response:
        """Run one request. `raw_text` lets read_file answer with a text/plain body."""
        result = await self.execute(params)
        return self.to_response(params.action, result, raw_text=raw_text)
