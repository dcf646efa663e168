"""Multi-architecture container image build pipeline."""

from .auth_descriptor import DESCRIPTOR_FILENAME, auth_descriptor, build_descriptor
from .config import CONFIG_FILENAME, load_settings, settings_from_mapping
from .credentials import CredentialResolver, role_arn_for
from .errors import (
    CredentialResolutionError,
    ExternalToolError,
    InputValidationError,
    ShipyardError,
)
from .inputs import arch_suffix, build_parameters, parse_build_args, parse_flag, values_from_env
from .pipeline import BuildPipeline
from .types import (
    BuildPlan,
    InvocationParameters,
    PipelineResult,
    PipelineSettings,
    RegistryCredentials,
    StepResult,
    TagSet,
)

__all__ = [
    "BuildPipeline",
    "BuildPlan",
    "CredentialResolver",
    "InvocationParameters",
    "PipelineResult",
    "PipelineSettings",
    "RegistryCredentials",
    "StepResult",
    "TagSet",
    "ShipyardError",
    "InputValidationError",
    "CredentialResolutionError",
    "ExternalToolError",
    "CONFIG_FILENAME",
    "DESCRIPTOR_FILENAME",
    "arch_suffix",
    "auth_descriptor",
    "build_descriptor",
    "build_parameters",
    "load_settings",
    "parse_build_args",
    "parse_flag",
    "role_arn_for",
    "settings_from_mapping",
    "values_from_env",
]
