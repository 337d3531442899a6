"""AI backends: web proxy client and direct provider"""

from docrouter.config import AIBackendConfig
from docrouter.llm.provider import DirectProviderBackend
from docrouter.llm.proxy import AIProxyClient


def create_backend(config: AIBackendConfig):
    """Backend selected by ``config.backend``"""
    if config.backend == "direct":
        return DirectProviderBackend(config)
    return AIProxyClient(config)


__all__ = ["AIProxyClient", "DirectProviderBackend", "create_backend"]
