"""Failures raised by text-generation providers and response validation."""


class ProviderError(Exception):
    """Base class; any subclass means "use the fallback"."""


class ProviderUnavailable(ProviderError):
    """No credential configured for the provider."""


class ProviderRateLimited(ProviderError):
    pass


class ProviderTransientError(ProviderError):
    """Connection failure, timeout or server-side error worth retrying."""


class ProviderBlocked(ProviderError):
    """The provider's safety filter refused the prompt or the answer."""


class ProviderResponseError(ProviderError):
    """Empty, unparseable or wrongly shaped response."""
