"""Error types raised by the deployment pipeline."""
from __future__ import annotations


class ChainDeployError(RuntimeError):
    """Base class for every error surfaced by the pipeline."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class ConfigValidationError(ChainDeployError):
    """Raised when the configuration is structurally invalid."""


class SourceResolutionError(ChainDeployError):
    """Raised when an entry path cannot be turned into source contents."""

    def __init__(self, path: str, cause: BaseException | None = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"while resolving entry '{path}'{detail}", cause=cause)
        self.path = path


class EnvironmentConnectError(ChainDeployError):
    """Raised when the node behind an environment cannot be reached."""

    def __init__(self, environment: str, cause: BaseException | None = None) -> None:
        super().__init__(
            f"while transforming environment, error attempting to connect to node environment '{environment}': {cause}",
            cause=cause,
        )
        self.environment = environment


class EnvironmentIdentityError(ChainDeployError):
    """Raised when the account list of an environment cannot be fetched."""

    def __init__(self, environment: str, cause: BaseException | None = None) -> None:
        super().__init__(
            f"while transforming environment '{environment}', error while getting accounts for deployment: {cause}",
            cause=cause,
        )
        self.environment = environment


class LoaderExecutionError(ChainDeployError):
    """Raised when a loader stage fails; no partial artifacts survive."""

    def __init__(self, loader: str, cause: BaseException | None = None) -> None:
        super().__init__(f"while processing entry data, loader '{loader}' error: {cause}", cause=cause)
        self.loader = loader


class MissingArtifactError(ChainDeployError):
    """Raised when ``deploy`` receives something that is not an artifact definition."""

    def __init__(self, value: object) -> None:
        super().__init__(
            "An artifact you are trying to deploy does not exist in your artifacts mapping "
            f"(got {value!r}). Please check your entry, loaders and artifacts."
        )
        self.value = value


class InvalidFromAddressError(ChainDeployError):
    """Raised when the resolved ``from`` of a deployment is not a 20 byte address."""

    def __init__(self, artifact: str, value: object) -> None:
        super().__init__(
            f"Attempting to deploy artifact '{artifact}' with an invalid 'from' account specified. "
            "The 'from' account must be a valid 20 byte hex prefixed address, "
            f"got value '{value}'. Please specify a default_tx in module.environment "
            "(i.e. 'default_tx': {'from': 0}) or pass tx= to the deploy call."
        )
        self.artifact = artifact
        self.value = value


class DeploymentError(ChainDeployError):
    """Raised when a deployment transaction was issued and failed."""

    def __init__(self, artifact: str, cause: BaseException | None = None) -> None:
        super().__init__(f"while deploying artifact '{artifact}': {cause}", cause=cause)
        self.artifact = artifact


class PluginExecutionError(ChainDeployError):
    """Raised when an output plugin fails; partial output is discarded."""

    def __init__(self, plugin: str, cause: BaseException | None = None) -> None:
        super().__init__(f"while processing output with plugins, plugin '{plugin}' error: {cause}", cause=cause)
        self.plugin = plugin


__all__ = [
    "ChainDeployError",
    "ConfigValidationError",
    "DeploymentError",
    "EnvironmentConnectError",
    "EnvironmentIdentityError",
    "InvalidFromAddressError",
    "LoaderExecutionError",
    "MissingArtifactError",
    "PluginExecutionError",
    "SourceResolutionError",
]
