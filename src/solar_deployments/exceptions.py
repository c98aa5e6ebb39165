"""Custom exception classes for solar-deployments library."""


class SolarError(Exception):
    """Base exception for deployment-related errors."""

    pass


class ConfigError(SolarError, ValueError):
    """Raised when the RPC target is ambiguous, missing or invalid."""

    pass


class RepositoryFileError(SolarError, OSError):
    """Raised when a contracts repository file cannot be read, parsed or written."""

    pass


class AlreadyExistsError(SolarError, ValueError):
    """Raised when a name is already bound to a confirmed contract."""

    pass


class ExpansionError(SolarError, ValueError):
    """Raised when a placeholder token is malformed."""

    pass


class UnknownReferenceError(ExpansionError, LookupError):
    """Raised when a placeholder names a contract missing from the repository."""

    def __init__(self, name: str, message: str = ""):
        self.name = name
        super().__init__(message or f"Invalid address expansion: {name}")


class RPCError(SolarError, ConnectionError):
    """Raised when the RPC backend is unreachable or reports an error."""

    def __init__(self, message: str, code=None):
        self.code = code
        super().__init__(message)


class ConfirmationTimeoutError(RPCError, TimeoutError):
    """Raised when a transaction is not mined before the caller's deadline."""

    pass


class ProtocolError(SolarError, ValueError):
    """Raised when an RPC response does not have the expected shape."""

    pass


class ConstructorParamsError(SolarError, ValueError):
    """Raised when constructor parameters cannot be ABI-encoded."""

    pass


class DeploymentOptionsError(SolarError, ValueError):
    """Raised when gas limit or gas price is below what the chain accepts."""

    pass


class ArtifactError(SolarError, ValueError):
    """Raised when a compiled contract artifact is missing or malformed."""

    pass
