"""ESI ingestion clients."""

from .auth import OAuthClient, TokenSource, token_source_factory
from .contracts import EsiListingSource
from .esi_client import EsiClient, EsiClientError
from .names import NameResolver
from .rate_limit import RateLimitPolicy

__all__ = [
    "EsiClient",
    "EsiClientError",
    "EsiListingSource",
    "NameResolver",
    "OAuthClient",
    "RateLimitPolicy",
    "TokenSource",
    "token_source_factory",
]
