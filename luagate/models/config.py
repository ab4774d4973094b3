"""Configuration models"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ScriptConfig(BaseModel):
    """Script block of one endpoint (or of the whole service)."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    sources: List[str] = Field(
        default_factory=list, description="Script files executed in order"
    )
    pre: str = Field(default="", description="Inline code run before the next stage")
    post: str = Field(default="", description="Inline code run after the next stage")
    skip_next: bool = Field(
        default=False, description="Do not call the next stage; post code sees an empty response"
    )
    allow_open_libs: bool = Field(
        default=False, description="Keep io, os, debug, require and friends available"
    )
    live: bool = Field(default=False, description="Re-read sources on every request")
    md5: Dict[str, Any] = Field(
        default_factory=dict, description="Expected md5 hex digest per source"
    )
    source_loader: Optional[Any] = Field(default=None, exclude=True)

    @field_validator("sources", mode="before")
    @classmethod
    def keep_string_sources(cls, v: Any) -> List[str]:
        if not isinstance(v, list):
            return []
        return [s for s in v if isinstance(s, str)]

    def get(self, name: str) -> Optional[str]:
        """Source text by name, or None when it has no backing content."""
        if self.source_loader is None:
            return None
        return self.source_loader.get(name)


class BackendConfig(BaseModel):
    """The backend behind an endpoint."""

    extra_config: Dict[str, Any] = Field(
        default_factory=dict, description="Script block wrapping each backend call"
    )


class EndpointConfig(BaseModel):
    """A gateway endpoint served from a static backend response."""

    endpoint: str
    method: str = "GET"
    response: Dict[str, Any] = Field(
        default_factory=dict, description="Static backend payload returned by the next stage"
    )
    extra_config: Dict[str, Any] = Field(default_factory=dict)
    backend: BackendConfig = Field(default_factory=BackendConfig)


class ServerConfig(BaseModel):
    """Server configuration"""

    host: str = "0.0.0.0"
    port: int = 8080


class GatewayConfig(BaseModel):
    """Gateway configuration"""

    server: ServerConfig = Field(default_factory=ServerConfig)
    extra_config: Dict[str, Any] = Field(default_factory=dict)
    endpoints: List[EndpointConfig] = Field(default_factory=list)
