"""Error taxonomy for the gateway and the fan-out client."""


class RelayError(Exception):
    """Base class for every error raised by llm_relay."""


# Gateway errors: rendered as {"error": ..., "message": ...} with status_code


class GatewayError(RelayError):
    status_code = 500
    error = "Internal error"

    def __init__(self, message: str, error: str = None, status_code: int = None):
        super().__init__(message)
        self.message = message
        if error is not None:
            self.error = error
        if status_code is not None:
            self.status_code = status_code

    def to_body(self) -> dict:
        return {"error": self.error, "message": self.message}


class AuthError(GatewayError):
    status_code = 401
    error = "Unauthorized"

    def __init__(self, reason: str):
        super().__init__(f"Request rejected: {reason}", error=reason)
        self.reason = reason


class ValidationError(GatewayError):
    """Unknown model (400) or missing premium entitlement (403)."""
    status_code = 400


class TransportError(GatewayError):
    status_code = 502
    error = "Upstream request failed"


class ConfigurationError(GatewayError):
    status_code = 500
    error = "Server misconfigured"


# Client errors: stored on ProviderExecutionResult.error


class UpstreamError(RelayError):
    """The provider answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"HTTP error {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class ContentError(RelayError):
    """The provider finished without producing any text."""

    def __init__(self, message: str = "No content returned from the model"):
        super().__init__(message)


class ClientCancellation(RelayError):
    """The caller cancelled a request; carries whatever text had arrived."""

    def __init__(self, partial_text: str = ""):
        super().__init__("Request cancelled by caller")
        self.partial_text = partial_text


class ProviderUnavailableError(RelayError):
    def __init__(self, provider_name: str):
        super().__init__(f"Provider '{provider_name}' is not available")
        self.provider_name = provider_name


class CatalogError(RelayError):
    """The catalog endpoint answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str = None):
        message = f"HTTP {status_code}: {body}" if body else f"HTTP error {status_code}"
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class EmptyInputError(RelayError):
    """There was nothing left to send once the input was trimmed."""

    def __init__(self, message: str = "Input text is empty"):
        super().__init__(message)
