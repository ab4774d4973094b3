"""Script stage wrapped around the next stage of the request pipeline.

For every invocation a fresh session runs the configured sources and the
``pre`` code against the request, hands the request to the next stage, then
runs the ``post`` code against the response. Request and response are host
maps shared with the scripts, which edit them in place through ``luaTable``.
"""

from typing import Any, Callable, Dict, Iterable, Optional, Sequence

from loguru import logger

from luagate.core.config import BACKEND_NAMESPACE, PROXY_NAMESPACE, parse_script_config
from luagate.core.exceptions import NoExtraConfigError
from luagate.models.config import ScriptConfig
from luagate.scripting.session import CORE_REGISTRARS, Registrar, ScriptSession

HostMap = Dict[str, Any]
Stage = Callable[[HostMap], HostMap]

PRE_FRAGMENT = "pre-script"
POST_FRAGMENT = "post-script"


class ScriptStage:
    """A pipeline stage running Lua before and after *next_stage*."""

    def __init__(
        self,
        config: ScriptConfig,
        next_stage: Stage,
        registrars: Sequence[Registrar] = CORE_REGISTRARS,
    ) -> None:
        self._config = config
        self._next = next_stage
        self._registrars = tuple(registrars)

    def __call__(self, request: HostMap) -> HostMap:
        cfg = self._config
        with ScriptSession(self._registrars, allow_open_libs=cfg.allow_open_libs) as session:
            session.bind("request", request)
            session.run_sources(cfg.sources, cfg)
            session.execute(PRE_FRAGMENT, cfg.pre)

            response: HostMap = {} if cfg.skip_next else self._next(request)

            session.bind("response", response)
            session.execute(POST_FRAGMENT, cfg.post)
        return response


def new_stage(
    extra_config: Dict[str, Any],
    next_stage: Stage,
    endpoint: str,
    extra_registrars: Optional[Iterable[Registrar]] = None,
) -> Stage:
    """Wrap *next_stage* with the endpoint's script block, if it has one."""
    return _wrap(
        extra_config, PROXY_NAMESPACE, next_stage, f"[ENDPOINT: {endpoint}][Lua]", extra_registrars
    )


def new_backend_stage(
    extra_config: Dict[str, Any],
    backend: Stage,
    name: str,
    extra_registrars: Optional[Iterable[Registrar]] = None,
) -> Stage:
    """Wrap a single backend call with the backend's script block, if it has one."""
    return _wrap(
        extra_config, BACKEND_NAMESPACE, backend, f"[BACKEND: {name}][Lua]", extra_registrars
    )


def _wrap(
    extra_config: Dict[str, Any],
    namespace: str,
    next_stage: Stage,
    log_prefix: str,
    extra_registrars: Optional[Iterable[Registrar]],
) -> Stage:
    try:
        cfg = parse_script_config(extra_config, namespace)
    except NoExtraConfigError:
        return next_stage

    logger.debug(f"{log_prefix} Stage is now ready")
    registrars = (*CORE_REGISTRARS, *(extra_registrars or ()))
    return ScriptStage(cfg, next_stage, registrars)
