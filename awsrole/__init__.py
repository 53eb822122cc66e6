"""
aws-role: Assume AWS IAM roles with MFA in an interactive shell.

A Python CLI utility that stores named role profiles (role ARN, MFA device ARN
and session duration) under an alias, and later assumes one of them with a
current MFA code via STS. The temporary credentials are injected into a new
interactive shell, never written to disk.

Key features:
- Keep role profiles in ~/.aws-role/config keyed by alias
- Assume a role with MFA using STS AssumeRole
- Launch a shell with the temporary credentials and a tagged prompt
- Propagate the shell's exit status to the caller
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .core import (
    DEFAULT_DURATION,
    AssumptionError,
    AwsRoleError,
    ConfigNotFoundError,
    MalformedResponseError,
    PlatformConfig,
    PlatformUnsupportedError,
    RoleProfile,
    TemporaryCredentials,
    add_configuration,
    assume_role,
    build_session_environment,
    delete_configuration,
    format_configuration,
    get_config_path,
    get_configuration,
    get_session_name,
    launch_session,
    read_configuration,
    read_raw_configuration,
    resolve_platform,
    write_configuration,
)

__all__ = [
    # Data types
    "RoleProfile",
    "TemporaryCredentials",
    "PlatformConfig",
    "DEFAULT_DURATION",
    # Errors
    "AwsRoleError",
    "ConfigNotFoundError",
    "AssumptionError",
    "MalformedResponseError",
    "PlatformUnsupportedError",
    # Platform
    "resolve_platform",
    "get_config_path",
    # Configuration store
    "read_configuration",
    "read_raw_configuration",
    "write_configuration",
    "add_configuration",
    "delete_configuration",
    "get_configuration",
    "format_configuration",
    # Role assumption
    "get_session_name",
    "assume_role",
    # Shell session
    "build_session_environment",
    "launch_session",
]
