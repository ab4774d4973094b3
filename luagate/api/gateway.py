"""Gateway endpoints backed by static responses and wrapped in script stages."""

import copy
import json
from typing import Any, Dict, Optional

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from luagate.api.middleware import error_response, project_request, run_router_scripts
from luagate.core.config import ROUTER_NAMESPACE, parse_script_config
from luagate.core.exceptions import NoExtraConfigError
from luagate.core.logging import clear_endpoint_context, get_logger, set_endpoint_context
from luagate.models.config import EndpointConfig, GatewayConfig, ScriptConfig
from luagate.pipeline import Stage, new_backend_stage, new_stage
from luagate.scripting.errors import ScriptError
from luagate.scripting.session import CORE_REGISTRARS

logger = get_logger()


def static_backend(endpoint: EndpointConfig) -> Stage:
    """Next stage returning the endpoint's configured payload."""

    def backend(request: Dict[str, Any]) -> Dict[str, Any]:
        return {"status": 200, "headers": {}, "data": copy.deepcopy(endpoint.response)}

    return backend


def response_status(value: Any, endpoint: str) -> int:
    """HTTP status of a pipeline response; a missing status means 200."""
    if value is None:
        return 200
    try:
        status = int(value)
    except (TypeError, ValueError):
        status = 0
    if isinstance(value, bool) or not 100 <= status <= 599:
        logger.warning(f"[ENDPOINT: {endpoint}][Lua] Invalid response status {value!r}, using 500")
        return 500
    return status


async def _read_body(request: Request) -> Any:
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return raw.decode("utf-8", errors="replace")


def _router_config(endpoint: EndpointConfig) -> Optional[ScriptConfig]:
    try:
        cfg = parse_script_config(endpoint.extra_config, ROUTER_NAMESPACE)
    except NoExtraConfigError:
        return None
    logger.debug(f"[ENDPOINT: {endpoint.endpoint}][Lua] Middleware is now ready")
    return cfg


def _endpoint_handler(endpoint: EndpointConfig):
    router_cfg = _router_config(endpoint)
    backend = new_backend_stage(
        endpoint.backend.extra_config, static_backend(endpoint), endpoint.endpoint
    )
    stage = new_stage(endpoint.extra_config, backend, endpoint.endpoint)

    def run(projected: Dict[str, Any]) -> Dict[str, Any]:
        set_endpoint_context(endpoint.endpoint)
        try:
            if router_cfg is not None:
                run_router_scripts(router_cfg, CORE_REGISTRARS, projected)
            return stage(projected)
        finally:
            clear_endpoint_context()

    async def handler(request: Request) -> Response:
        projected = project_request(request)
        projected["body"] = await _read_body(request)
        try:
            response = await run_in_threadpool(run, projected)
        except ScriptError as e:
            return error_response(e)

        headers = response.get("headers")
        return JSONResponse(
            content=response.get("data"),
            status_code=response_status(response.get("status"), endpoint.endpoint),
            headers={str(k): str(v) for k, v in headers.items()} if isinstance(headers, dict) else None,
        )

    return handler


def build_router(config: GatewayConfig) -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok"}

    for endpoint in config.endpoints:
        router.add_api_route(
            endpoint.endpoint,
            _endpoint_handler(endpoint),
            methods=[endpoint.method.upper()],
        )
        logger.info(f"Registered endpoint {endpoint.method.upper()} {endpoint.endpoint}")

    return router
