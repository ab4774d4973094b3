"""Main application entry point"""
from typing import Optional

from fastapi import FastAPI

from luagate.api.gateway import build_router
from luagate.api.middleware import ScriptMiddleware
from luagate.core.config import ROUTER_NAMESPACE, parse_script_config
from luagate.core.exceptions import NoExtraConfigError
from luagate.core.logging import get_logger
from luagate.models.config import GatewayConfig

logger = get_logger()


def create_app(config: Optional[GatewayConfig] = None) -> FastAPI:
    """Create and configure FastAPI application"""
    config = config or GatewayConfig()

    app = FastAPI(
        title="luagate",
        description="API gateway with Lua request/response scripting",
        version="1.0.0",
    )

    try:
        script_config = parse_script_config(config.extra_config, ROUTER_NAMESPACE)
    except NoExtraConfigError:
        script_config = None
    if script_config is not None:
        app.add_middleware(ScriptMiddleware, config=script_config)

    app.include_router(build_router(config))

    logger.info(f"Gateway ready with {len(config.endpoints)} endpoint(s)")
    return app
