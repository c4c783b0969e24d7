"""Release registry (GitHub Releases) client."""

from chartrel.registry.client import (
    RegistryError,
    ReleaseDescriptor,
    ReleaseRegistry,
)
from chartrel.registry.http import (
    HttpClient,
    HttpError,
    MockHttpClient,
    RealHttpClient,
)
from chartrel.registry.timeouts import REGISTRY_TIMEOUT_SECONDS

__all__ = [
    "REGISTRY_TIMEOUT_SECONDS",
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
    "RegistryError",
    "ReleaseDescriptor",
    "ReleaseRegistry",
]
