class RsaClientError(RuntimeError):
    """Base client error."""


class RsaConfigurationError(RsaClientError):
    """Configuration is invalid, incomplete, or the key role does not allow the operation."""


class RsaParseError(RsaClientError):
    """PEM key material could not be parsed."""


class RsaOperationError(RsaClientError):
    """An RSA provider operation failed."""
