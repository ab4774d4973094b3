"""Data models and schemas"""
from .config import BackendConfig, EndpointConfig, GatewayConfig, ScriptConfig, ServerConfig

__all__ = ["BackendConfig", "EndpointConfig", "GatewayConfig", "ScriptConfig", "ServerConfig"]
