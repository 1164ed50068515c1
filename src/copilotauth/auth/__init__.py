"""Auth package — GitHub device flow, Copilot token exchange and storage."""

from copilotauth.auth.credential import Credential
from copilotauth.auth.errors import (
    CopilotAuthError,
    DeadlineExceeded,
    ExchangeFailure,
    OAuthDenial,
    PersistenceError,
    ProviderProtocolError,
    TransportError,
    UnexpectedStatus,
)
from copilotauth.auth.events import (
    AuthComplete,
    AuthenticationOutcome,
    AuthStarted,
    CollectingSink,
    Event,
    EventSink,
)
from copilotauth.auth.exchange import (
    CredentialExchanger,
    ExchangeEndpoint,
    ExchangeField,
    ExchangeResult,
)
from copilotauth.auth.oauth import (
    DeviceAuthorizationGrant,
    DeviceFlowClient,
    FlowState,
    OAuthErrorCode,
    handle_copilot_auth,
)
from copilotauth.auth.storage import (
    CredentialStore,
    ensure_copilot_token_in_env,
    load_copilot_token,
)
from copilotauth.auth.transport import Transport

__all__ = [
    "AuthComplete",
    "AuthStarted",
    "AuthenticationOutcome",
    "CollectingSink",
    "CopilotAuthError",
    "Credential",
    "CredentialExchanger",
    "CredentialStore",
    "DeadlineExceeded",
    "DeviceAuthorizationGrant",
    "DeviceFlowClient",
    "Event",
    "EventSink",
    "ExchangeEndpoint",
    "ExchangeFailure",
    "ExchangeField",
    "ExchangeResult",
    "FlowState",
    "OAuthDenial",
    "OAuthErrorCode",
    "PersistenceError",
    "ProviderProtocolError",
    "Transport",
    "TransportError",
    "UnexpectedStatus",
    "ensure_copilot_token_in_env",
    "handle_copilot_auth",
    "load_copilot_token",
]
