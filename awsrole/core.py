"""
Core configuration, role assumption and session functions for aws-role.
"""

import getpass
import json
import os
import subprocess
import sys
from collections import namedtuple
from pathlib import Path

import boto3
from botocore.exceptions import BotoCoreError, ClientError

DEFAULT_DURATION = 3600
CONFIG_DIR_NAME = ".aws-role"
CONFIG_FILE_NAME = "config"
SESSION_NAME_PREFIX = "aws-role-"


class AwsRoleError(Exception):
    """Base class for errors reported by aws-role."""


class ConfigNotFoundError(AwsRoleError):
    """No role configuration is stored for the requested alias."""


class AssumptionError(AwsRoleError):
    """The AssumeRole request was rejected or could not be sent."""

    def __init__(self, message, code=None):
        super().__init__(message)
        self.code = code


class MalformedResponseError(AwsRoleError):
    """The AssumeRole response did not contain usable credentials."""


class PlatformUnsupportedError(AwsRoleError):
    """The host operating system has no known home directory or shell."""


class RoleProfile(namedtuple("RoleProfile", ["role", "mfa", "duration"])):
    """A stored role: role ARN, MFA device ARN and session duration in seconds."""

    __slots__ = ()

    def __new__(cls, role, mfa, duration=DEFAULT_DURATION):
        return super().__new__(cls, role, mfa, duration)

    @classmethod
    def from_dict(cls, data):
        """
        Build a RoleProfile from a decoded configuration entry.

        Args:
            data: dict with role, mfa and optionally duration

        Returns:
            RoleProfile

        Raises:
            ValueError: If a field is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise ValueError("entry is not an object")

        role = data.get("role")
        mfa = data.get("mfa")
        duration = data.get("duration", DEFAULT_DURATION)

        if not isinstance(role, str) or not role:
            raise ValueError("'role' must be a non-empty string")
        if not isinstance(mfa, str) or not mfa:
            raise ValueError("'mfa' must be a non-empty string")
        # bool is a subclass of int
        if isinstance(duration, bool) or not isinstance(duration, int):
            raise ValueError("'duration' must be an integer number of seconds")

        return cls(role, mfa, duration)

    def to_dict(self):
        return {"role": self.role, "mfa": self.mfa, "duration": self.duration}


TemporaryCredentials = namedtuple(
    "TemporaryCredentials",
    ["access_key_id", "secret_access_key", "session_token", "expiration"],
)


class PlatformConfig(namedtuple("PlatformConfig", ["name", "home_resolver", "shell"])):
    """Host-specific settings resolved once at startup."""

    __slots__ = ()

    def home(self):
        return self.home_resolver()


def _posix_home(environ):
    return environ.get("HOME") or "."


def _windows_home(environ):
    if environ.get("USERPROFILE"):
        return environ["USERPROFILE"]
    if environ.get("HOMEPATH"):
        return (environ.get("HOMEDRIVE") or "C:\\") + environ["HOMEPATH"]
    return "C:\\"


def resolve_platform(platform=None, environ=None):
    """
    Resolve the home directory lookup and interactive shell for this host.

    Args:
        platform: Platform identifier (default: sys.platform)
        environ: Environment mapping to read home variables from (default: os.environ)

    Returns:
        PlatformConfig

    Raises:
        PlatformUnsupportedError: If the host is neither Linux nor Windows
    """
    platform = sys.platform if platform is None else platform
    environ = os.environ if environ is None else environ

    if platform.startswith("linux"):
        return PlatformConfig(platform, lambda: _posix_home(environ), "bash")
    if platform == "win32":
        return PlatformConfig(platform, lambda: _windows_home(environ), "cmd")

    raise PlatformUnsupportedError(f"{platform} is not supported")


def get_config_path(platform_config):
    """Get the aws-role configuration file path."""
    return os.path.join(platform_config.home(), CONFIG_DIR_NAME, CONFIG_FILE_NAME)


def read_raw_configuration(config_file):
    """
    Read the role configuration file without validating its entries.

    A missing, unreadable or malformed file is treated as an empty
    configuration.

    Args:
        config_file: Path to configuration file

    Returns:
        dict mapping alias to the decoded JSON entry
    """
    try:
        with open(config_file, "r") as f:
            data = json.load(f)
    except (OSError, ValueError):
        return {}

    if not isinstance(data, dict):
        return {}
    return data


def read_configuration(config_file):
    """
    Read the role configuration file.

    Entries that fail validation are skipped with a warning. They stay in
    the file.

    Args:
        config_file: Path to configuration file

    Returns:
        dict mapping alias to RoleProfile
    """
    config = {}
    for alias, entry in read_raw_configuration(config_file).items():
        try:
            config[alias] = RoleProfile.from_dict(entry)
        except ValueError as e:
            print(f"⚠ Warning: Ignoring invalid role configuration '{alias}': {e}", file=sys.stderr)
    return config


def write_configuration(config_file, config):
    """
    Write the role configuration file with owner-only permissions.

    Values may be RoleProfile records or raw decoded entries, which are
    written back unchanged.
    """
    Path(config_file).parent.mkdir(parents=True, exist_ok=True)

    data = {
        alias: profile.to_dict() if isinstance(profile, RoleProfile) else profile
        for alias, profile in config.items()
    }

    fd = os.open(config_file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w") as f:
        json.dump(data, f, indent=2)
        f.write("\n")


def add_configuration(config_file, alias, profile):
    """
    Store a role profile under an alias, replacing any existing entry.

    Args:
        config_file: Path to configuration file
        alias: Alias to store the profile under
        profile: RoleProfile to store
    """
    config = read_raw_configuration(config_file)
    config[alias] = profile.to_dict()
    write_configuration(config_file, config)


def delete_configuration(config_file, alias):
    """
    Remove the role profile stored under an alias.

    Returns:
        bool: True if the alias was configured, False otherwise
    """
    config = read_raw_configuration(config_file)
    existed = alias in config
    config.pop(alias, None)
    write_configuration(config_file, config)
    return existed


def get_configuration(config_file, alias):
    """
    Look up the role profile for an alias.

    Raises:
        ConfigNotFoundError: If the alias is not configured
    """
    config = read_configuration(config_file)
    if alias not in config:
        raise ConfigNotFoundError(f"Couldn't find role configuration for {alias}")
    return config[alias]


def format_configuration(config):
    """Render the configuration the way `list` prints it."""
    data = {alias: profile.to_dict() for alias, profile in config.items()}
    return f"Configured roles:\n{json.dumps(data, indent=2)}"


def get_session_name(username=None):
    """Get the STS role session name for the local OS user."""
    if username is None:
        try:
            username = getpass.getuser()
        except (KeyError, OSError) as e:
            raise AwsRoleError(f"Could not determine current OS username: {e}") from e
    return f"{SESSION_NAME_PREFIX}{username}"


def assume_role(profile, mfa_code, session_name, session=None):
    """
    Assume a role with MFA using STS AssumeRole.

    Args:
        profile: RoleProfile to assume
        mfa_code: Current code from the MFA device
        session_name: Role session name
        session: boto3.Session to use (default: a new session)

    Returns:
        TemporaryCredentials

    Raises:
        AssumptionError: If STS rejects the request or cannot be reached
        MalformedResponseError: If the response carries no credentials
    """
    if session is None:
        session = boto3.Session()

    try:
        sts_client = session.client("sts")
        response = sts_client.assume_role(
            RoleArn=profile.role,
            RoleSessionName=session_name,
            SerialNumber=profile.mfa,
            TokenCode=mfa_code,
            DurationSeconds=profile.duration,
        )
    except ClientError as e:
        error = e.response.get("Error", {})
        raise AssumptionError(error.get("Message", str(e)), code=error.get("Code")) from e
    except BotoCoreError as e:
        raise AssumptionError(str(e)) from e

    credentials = response.get("Credentials")
    if not credentials:
        raise MalformedResponseError("Credentials not found")

    try:
        access_key_id = credentials["AccessKeyId"]
        secret_access_key = credentials["SecretAccessKey"]
        session_token = credentials["SessionToken"]
    except KeyError as e:
        raise MalformedResponseError(f"Credentials not found: missing {e.args[0]}") from e

    expiration = credentials.get("Expiration")
    if expiration is not None and hasattr(expiration, "isoformat"):
        expiration = expiration.isoformat()

    return TemporaryCredentials(access_key_id, secret_access_key, session_token, expiration)


def build_session_environment(credentials, alias, environ=None):
    """
    Build the environment for the assumed-role shell.

    Args:
        credentials: TemporaryCredentials to inject
        alias: Alias shown in the shell prompt
        environ: Environment to inherit (default: os.environ)

    Returns:
        dict: A new environment; the inherited mapping is left untouched
    """
    env = dict(os.environ if environ is None else environ)
    env.update(
        {
            "AWS_ACCESS_KEY_ID": credentials.access_key_id,
            "AWS_SECRET_ACCESS_KEY": credentials.secret_access_key,
            "AWS_SESSION_TOKEN": credentials.session_token,
            # Older SDKs and tools only read this name
            "AWS_SECURITY_TOKEN": credentials.session_token,
            "PROMPT": f"(aws-role {alias}) > ",
        }
    )
    return env


def normalize_exit_code(returncode):
    """Map a subprocess return code to a shell-style exit status."""
    if returncode < 0:
        return 128 + abs(returncode)
    return returncode


def launch_session(credentials, alias, platform_config, environ=None):
    """
    Run an interactive shell with the assumed-role credentials.

    The shell inherits this terminal and the call blocks until it exits.

    Args:
        credentials: TemporaryCredentials to inject
        alias: Alias shown in the shell prompt
        platform_config: PlatformConfig naming the shell
        environ: Environment to inherit (default: os.environ)

    Returns:
        int: The shell's exit status
    """
    env = build_session_environment(credentials, alias, environ)
    process = subprocess.Popen([platform_config.shell], env=env)
    while True:
        try:
            returncode = process.wait()
            break
        except KeyboardInterrupt:
            # Ctrl-C reaches the shell through the terminal; keep waiting
            continue
    return normalize_exit_code(returncode)
