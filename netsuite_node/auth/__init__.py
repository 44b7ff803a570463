from .oauth1 import OAuth1Signer
from .oauth2 import (
    AuthorizationFlowState,
    InMemoryTokenStore,
    OAuth2TokenBroker,
    TokenPair,
    TokenStore,
)
from .transport import (
    AuthorizationTransport,
    LoopbackAuthorizationTransport,
    NullAuthorizationTransport,
)

__all__ = [
    "AuthorizationFlowState",
    "AuthorizationTransport",
    "InMemoryTokenStore",
    "LoopbackAuthorizationTransport",
    "NullAuthorizationTransport",
    "OAuth1Signer",
    "OAuth2TokenBroker",
    "TokenPair",
    "TokenStore",
]
