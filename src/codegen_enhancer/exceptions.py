"""Custom exception classes for the codegen enhancer."""


class EnhancerError(Exception):
    """Base exception for codegen enhancer errors."""

    def __init__(self, message: str, code: str = "internal", detail: str = ""):
        self.message = message
        self.code = code
        self.detail = detail
        super().__init__(message)


class ConfigurationError(EnhancerError):
    """Required configuration is missing or invalid. Never retried."""

    def __init__(self, message: str, detail: str = ""):
        super().__init__(message, code="config_error", detail=detail)


class ProviderError(EnhancerError):
    """Errors raised while talking to an LLM backend."""

    def __init__(self, message: str, code: str = "provider_error", detail: str = ""):
        super().__init__(message, code=code, detail=detail)


class ProviderTimeoutError(ProviderError):
    """Backend did not answer within the configured timeout."""

    def __init__(self, timeout: float):
        super().__init__(f"LLM request timed out after {timeout:g}s", code="timeout")
        self.timeout = timeout


class ProviderResponseError(ProviderError):
    """Backend answered with an empty or malformed payload."""

    def __init__(self, message: str = "LLM returned an empty response"):
        super().__init__(message, code="bad_response")


class CustomProviderLoadError(ProviderError):
    """A user-supplied provider could not be resolved or constructed."""

    def __init__(self, reference: str, detail: str = ""):
        super().__init__(
            f"Failed to load custom provider: {reference}",
            code="custom_provider_load",
            detail=detail,
        )
        self.reference = reference
