"""Script middleware for FastAPI / Starlette applications."""

import copy
from typing import Any, Callable, Dict, List, Sequence, Tuple
from urllib.parse import urlencode

from fastapi import Request, Response
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from luagate.core.logging import get_logger
from luagate.models.config import ScriptConfig
from luagate.pipeline import PRE_FRAGMENT
from luagate.scripting.errors import HTTPError, HTTPErrorWithEncoding, ScriptError
from luagate.scripting.session import CORE_REGISTRARS, Registrar, ScriptSession

logger = get_logger()


def error_response(err: ScriptError) -> Response:
    """Map a decoded script error to the HTTP response sent to the client.

    HTTPError carries its own status; HTTPErrorWithEncoding also sets the
    content type. Everything else is a 500.
    """
    status_code = 500
    media_type = "text/plain"
    if isinstance(err, HTTPError) and 100 <= err.status_code <= 599:
        status_code = err.status_code
    if isinstance(err, HTTPErrorWithEncoding) and err.encoding:
        media_type = err.encoding
    return Response(content=str(err), status_code=status_code, media_type=media_type)


def _group(items: Sequence[Tuple[str, str]]) -> Dict[str, List[str]]:
    grouped: Dict[str, List[str]] = {}
    for key, value in items:
        grouped.setdefault(key, []).append(value)
    return grouped


def project_request(request: Request) -> Dict[str, Any]:
    """Host map of the request parts scripts may read and rewrite.

    Headers and query parameters map each name to the list of its values,
    so repeated fields survive a round trip through a script.
    """
    return {
        "method": request.method,
        "path": request.url.path,
        "query": _group(request.query_params.multi_items()),
        "headers": _group(request.headers.items()),
    }


def _flatten(fields: Dict[str, Any]) -> List[Tuple[str, str]]:
    pairs: List[Tuple[str, str]] = []
    for key, value in fields.items():
        if value is None:
            continue
        values = value if isinstance(value, list) else [value]
        pairs.extend((str(key), str(v)) for v in values if v is not None)
    return pairs


def apply_request(request: Request, original: Dict[str, Any], projected: Dict[str, Any]) -> None:
    """Write script edits to query and headers back into the ASGI scope.

    A field is rewritten only when the script changed it. A header or
    parameter value may be a single string or a list of strings.
    """
    headers = projected.get("headers")
    if isinstance(headers, dict) and headers != original.get("headers"):
        request.scope["headers"] = [
            (k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in _flatten(headers)
        ]
    query = projected.get("query")
    if isinstance(query, dict) and query != original.get("query"):
        request.scope["query_string"] = urlencode(_flatten(query)).encode("latin-1")


def run_router_scripts(
    config: ScriptConfig,
    registrars: Sequence[Registrar],
    projected: Dict[str, Any],
) -> None:
    """Run the sources and pre code of a router block against *projected*."""
    with ScriptSession(registrars, allow_open_libs=config.allow_open_libs) as session:
        session.bind("request", projected)
        session.run_sources(config.sources, config)
        session.execute(PRE_FRAGMENT, config.pre)


class ScriptMiddleware(BaseHTTPMiddleware):
    """Run the configured sources and pre code before every request.

    The whole session lives on one worker thread. A script error aborts the
    request with the mapped error response.
    """

    def __init__(
        self,
        app,
        config: ScriptConfig,
        registrars: Sequence[Registrar] = CORE_REGISTRARS,
    ) -> None:
        super().__init__(app)
        self._config = config
        self._registrars = tuple(registrars)
        logger.debug("[SERVICE: FastAPI][Lua] Middleware is now ready")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        original = project_request(request)
        projected = copy.deepcopy(original)
        try:
            await run_in_threadpool(run_router_scripts, self._config, self._registrars, projected)
        except ScriptError as e:
            logger.warning(f"[SERVICE: FastAPI][Lua] {request.url.path}: {e}")
            return error_response(e)

        apply_request(request, original, projected)
        return await call_next(request)
