# remote_executor/api_routes.py
import json
from typing import Any, Dict

from fastapi import APIRouter, Request

from .dispatcher import Dispatcher, RequestParams, error_response
from .errors import BadRequest, GatewayError, PayloadTooLarge

router = APIRouter()


def _dispatcher(request: Request) -> Dispatcher:
    return request.app.state.dispatcher


def _media_type(request: Request) -> str:
    return request.headers.get("content-type", "").split(";")[0].strip().lower()


def _is_json(media_type: str) -> bool:
    return media_type == "application/json" or media_type.endswith("+json")


async def _read_body(request: Request, limit: int) -> bytes:
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise PayloadTooLarge("Payload too large")
    # chunked bodies carry no length; count while reading
    chunks = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > limit:
            raise PayloadTooLarge("Payload too large")
        chunks.append(chunk)
    body = b"".join(chunks)
    # request.form() re-reads from the cached body
    request._body = body
    return body


def _charset(request: Request) -> str:
    for part in request.headers.get("content-type", "").split(";")[1:]:
        key, _, value = part.partition("=")
        if key.strip().lower() == "charset" and value.strip():
            return value.strip().strip('"')
    return "utf-8"


async def normalize_post(request: Request, limit: int) -> RequestParams:
    """Flatten a POST into request parameters according to its content type.

    JSON bodies stand alone; a text/plain body becomes `content` next to the
    query string; anything else merges form fields over the query string.
    """
    body = await _read_body(request, limit)
    media_type = _media_type(request)

    if _is_json(media_type):
        if not body.strip():
            return RequestParams()
        try:
            data = json.loads(body)
        except ValueError:
            raise BadRequest("Invalid JSON body")
        return RequestParams.from_mapping(data if isinstance(data, dict) else {})

    params: Dict[str, Any] = dict(request.query_params)
    if media_type == "text/plain":
        try:
            params["content"] = body.decode(_charset(request))
        except (LookupError, UnicodeDecodeError):
            raise BadRequest("Invalid text body")
        return RequestParams.from_mapping(params)

    if media_type in ("application/x-www-form-urlencoded", "multipart/form-data"):
        form = await request.form()
        params.update({k: v for k, v in form.items() if isinstance(v, str)})
    return RequestParams.from_mapping(params)


@router.get("/api")
async def api_get(request: Request):
    params = RequestParams.from_mapping(request.query_params)
    return await _dispatcher(request).handle(params, raw_text=True)


@router.post("/api")
async def api_post(request: Request):
    try:
        params = await normalize_post(request, request.app.state.config.max_body_bytes)
    except GatewayError as e:
        return error_response(e)
    return await _dispatcher(request).handle(params)
