"""
Command-line interface for aws-role.
"""

import argparse
import sys

import boto3
from botocore.exceptions import BotoCoreError

from . import __version__
from .core import (
    DEFAULT_DURATION,
    AssumptionError,
    AwsRoleError,
    RoleProfile,
    add_configuration,
    assume_role,
    delete_configuration,
    format_configuration,
    get_config_path,
    get_configuration,
    get_session_name,
    launch_session,
    read_configuration,
    resolve_platform,
)


def build_parser():
    """Build the argument parser with the add, assume, delete and list commands."""
    parser = argparse.ArgumentParser(
        prog="aws-role",
        description="Store AWS role profiles and assume them with MFA in a new shell",
        epilog="Examples:\n"
        "  aws-role add -a prod -r arn:aws:iam::111111111111:role/Admin \\\n"
        "               -m arn:aws:iam::222222222222:mfa/me -d 900\n"
        "  aws-role assume -a prod -c 123456\n"
        "  aws-role delete -a prod\n"
        "  aws-role list",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )
    parser.add_argument("--version", action="version", version=f"aws-role {__version__}")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    add_parser = subparsers.add_parser(
        "add", help="Add an aws role configuration", allow_abbrev=False
    )
    add_parser.add_argument("-a", "--alias", required=True, help="the alias of role")
    add_parser.add_argument("-r", "--role", required=True, help="the arn of role")
    add_parser.add_argument("-m", "--mfa", required=True, help="the arn of mfa")
    add_parser.add_argument(
        "-d",
        "--duration",
        type=int,
        default=DEFAULT_DURATION,
        help=f"the session duration in seconds (default: {DEFAULT_DURATION})",
    )

    assume_parser = subparsers.add_parser(
        "assume", help="Assume an aws role", allow_abbrev=False
    )
    assume_parser.add_argument("-a", "--alias", required=True, help="the alias of role")
    assume_parser.add_argument("-c", "--code", required=True, help="the mfa code")
    assume_parser.add_argument(
        "-p",
        "--profile",
        default=None,
        help="AWS profile holding the credentials used to call STS "
        "(defaults to the standard boto3 credential chain, including AWS_PROFILE)",
    )

    delete_parser = subparsers.add_parser(
        "delete", help="Delete an aws role configuration", allow_abbrev=False
    )
    delete_parser.add_argument("-a", "--alias", required=True, help="the alias of role")

    subparsers.add_parser("list", help="List the role configuration", allow_abbrev=False)

    return parser


def report_write_failure(config_file, error):
    print(f"Error: Failed to update configuration file {config_file}", file=sys.stderr)
    print(f"Details: {error}", file=sys.stderr)
    return 1


def command_add(args, config_file):
    profile = RoleProfile(args.role, args.mfa, args.duration)
    try:
        add_configuration(config_file, args.alias, profile)
    except OSError as e:
        return report_write_failure(config_file, e)
    print(f"✓ Saved role configuration '{args.alias}'")
    return 0


def command_delete(args, config_file):
    try:
        existed = delete_configuration(config_file, args.alias)
    except OSError as e:
        return report_write_failure(config_file, e)

    if existed:
        print(f"✓ Deleted role configuration '{args.alias}'")
    else:
        print(f"ℹ No role configuration for '{args.alias}', nothing to delete")
    return 0


def command_list(args, config_file):
    print(format_configuration(read_configuration(config_file)))
    return 0


def command_assume(args, config_file, platform_config):
    profile = get_configuration(config_file, args.alias)
    try:
        session = boto3.Session(profile_name=args.profile)
    except BotoCoreError as e:
        raise AssumptionError(str(e)) from e
    credentials = assume_role(profile, args.code, get_session_name(), session=session)

    print(f"✓ Assumed role {profile.role}")
    if credentials.expiration:
        print(f"✓ Credentials expire at: {credentials.expiration}")

    try:
        exit_code = launch_session(credentials, args.alias, platform_config)
    except OSError as e:
        raise AwsRoleError(f"Failed to start shell '{platform_config.shell}': {e}") from e
    print("Bye")
    return exit_code


def main(argv=None):
    """Main CLI entry point."""
    try:
        platform_config = resolve_platform()
    except AwsRoleError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    parser = build_parser()
    args = parser.parse_args(argv)
    config_file = get_config_path(platform_config)

    try:
        if args.command == "add":
            return command_add(args, config_file)
        if args.command == "delete":
            return command_delete(args, config_file)
        if args.command == "list":
            return command_list(args, config_file)
        return command_assume(args, config_file, platform_config)
    except AssumptionError as e:
        print("Error: Operation failed", file=sys.stderr)
        if e.code:
            print(f"Details: {e} ({e.code})", file=sys.stderr)
        else:
            print(f"Details: {e}", file=sys.stderr)
        return 1
    except AwsRoleError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
