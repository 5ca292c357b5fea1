from ideflow_core.handlers.base import (
    BaseHandlerClient,
    CreditsExhaustedError,
    HandlerConnectionError,
    HandlerError,
    HandlerRequestError,
    RateLimitError,
    StreamResponse,
)

__all__ = [
    "BaseHandlerClient",
    "CreditsExhaustedError",
    "HandlerConnectionError",
    "HandlerError",
    "HandlerRequestError",
    "RateLimitError",
    "StreamResponse",
]
