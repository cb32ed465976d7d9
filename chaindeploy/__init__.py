"""Configuration-driven contract deployment with idempotent redeploys."""
from __future__ import annotations

from .console import Console
from .deployer import build_deploy_method, is_transaction_object
from .environment import ResolvedEnvironment, resolve_environment, transform_tx_object
from .errors import (
    ChainDeployError,
    ConfigValidationError,
    DeploymentError,
    EnvironmentConnectError,
    EnvironmentIdentityError,
    InvalidFromAddressError,
    LoaderExecutionError,
    MissingArtifactError,
    PluginExecutionError,
    SourceResolutionError,
)
from .loaders import register_loader, run_loaders
from .network import ContractInstance, InMemoryNetwork, NetworkClient, NetworkError
from .pipeline import PipelineResult, chaindeploy, run_pipeline
from .plugins import JsonExpander, JsonFilter, JsonMinifier, YamlWriter, process_output, register_plugin
from .rpc import JsonRpcNetwork
from .sources import build_source_map

__all__ = [
    "ChainDeployError",
    "ConfigValidationError",
    "Console",
    "ContractInstance",
    "DeploymentError",
    "EnvironmentConnectError",
    "EnvironmentIdentityError",
    "InMemoryNetwork",
    "InvalidFromAddressError",
    "JsonExpander",
    "JsonFilter",
    "JsonMinifier",
    "JsonRpcNetwork",
    "LoaderExecutionError",
    "MissingArtifactError",
    "NetworkClient",
    "NetworkError",
    "PipelineResult",
    "PluginExecutionError",
    "ResolvedEnvironment",
    "SourceResolutionError",
    "YamlWriter",
    "build_deploy_method",
    "build_source_map",
    "chaindeploy",
    "is_transaction_object",
    "process_output",
    "register_loader",
    "register_plugin",
    "resolve_environment",
    "run_loaders",
    "run_pipeline",
    "transform_tx_object",
]
