"""CLI entrypoint for secret-sync."""
import os
import sys
import argparse
import logging

from .validators import validate_environment_name, validate_filter_tags

VERSION = "0.1.0"

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
}

# Configure logging to stderr
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    stream=sys.stderr
)
logger = logging.getLogger(__name__)


def _set_log_level(level_name):
    """Apply a LOG_LEVEL value; unknown or empty values keep the current level."""
    if not level_name:
        return
    level = LOG_LEVELS.get(level_name.lower())
    if level is None:
        logger.warning(f"Unknown LOG_LEVEL '{level_name}', keeping current level")
        return
    logging.getLogger().setLevel(level)


def _load_config(args):
    """Validate CLI overrides and load the sync configuration, exiting with 2 on errors."""
    from secret_sync.secrets.domains.config_loader import load_config
    from secret_sync.secrets.domains.errors import ConfigError

    if args.environment is not None:
        validate_environment_name(args.environment)
    if getattr(args, "filter_tags", None) is not None:
        validate_filter_tags(args.filter_tags)

    try:
        config = load_config(
            args.config,
            environment=args.environment,
            filter_tags=getattr(args, "filter_tags", None),
        )
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    _set_log_level(config.log_level)
    return config


def cmd_version(args):
    """Show version information."""
    print(f"secret-sync {VERSION}")


def cmd_sync(args):
    """Sync secrets from the source store to the destination store."""
    from secret_sync.secrets.domains.errors import ConfigError, SecretStoreError
    from secret_sync.secrets.workflows.sync_operations import sync_secrets

    config = _load_config(args)

    try:
        summary = sync_secrets(config, dry_run=args.dry_run)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except SecretStoreError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    prefix = "Planned" if summary.dry_run else "Synced"
    print(
        f"{prefix} {config.environment} secrets: "
        f"{summary.created} created, {summary.updated} updated, "
        f"{summary.deleted} deleted, {summary.unchanged} unchanged"
    )
    for failure in summary.failures:
        print(f"Failed to {failure.action} '{failure.name}': {failure.error}", file=sys.stderr)

    # Per-secret failures are logged and reported but do not fail the run
    sys.exit(0)


def cmd_list(args):
    """List secret names in scope (never values)."""
    from secret_sync.secrets.domains.errors import ConfigError, SecretStoreError
    from secret_sync.secrets.workflows.scoping import get_scoped_secrets
    from secret_sync.secrets.workflows.sync_operations import create_store, get_source_secrets

    config = _load_config(args)

    try:
        if args.side == "destination":
            secrets = get_scoped_secrets(create_store(config.destination))
        else:
            secrets = get_source_secrets(config, create_store(config.source))
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except SecretStoreError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    for secret in sorted(secrets, key=lambda s: s.name):
        env = secret.environment.env_name if secret.environment else "-"
        print(f"{secret.name}\t{env}")


def _add_common_arguments(parser):
    parser.add_argument(
        "--config",
        help="YAML config file (defaults to SECRET_SYNC_CONFIG env var)"
    )
    parser.add_argument(
        "--environment",
        help="Sync environment: dev, test, staging, prod, nonprod or global (overrides ENVIRONMENT)"
    )


def main():
    """Main CLI entrypoint.

    Exit codes:
        0 - Success (per-secret failures are reported but do not change the code)
        1 - Runtime errors (connection, authentication, listing)
        2 - Usage or configuration errors
    """
    _set_log_level(os.getenv("LOG_LEVEL"))

    parser = argparse.ArgumentParser(
        prog="secret-sync",
        description="Sync environment-scoped secrets between Vault, AWS Secrets Manager and GCP Secret Manager",
        epilog="""
Exit codes:
  0 - Success (per-secret write failures are reported on stderr)
  1 - Runtime error (connection, authentication, listing)
  2 - Usage or configuration error

Environment variables:
  ENVIRONMENT                  - Sync environment (dev, test, staging, prod, nonprod, global)
  SOURCE_SYSTEM, DEST_SYSTEM   - vault, aws or gcp
  FILTER_TAGS                  - Only sync secrets with these tags (TAG1=VALUE1;TAG2=VALUE2)
  LOG_LEVEL                    - debug, info, warn, error, fatal
  SECRET_SYNC_CONFIG           - YAML file with any of the variables above

Backend variables are read with the SOURCE_/DEST_ prefix first, then unprefixed:
  VAULT_ADDR, VAULT_TOKEN, VAULT_KUBERNETES_ROLE, VAULT_SECRETS_ENGINE
  AWS_REGION, AWS_ROLE_ARN
  GCP_PROJECT, GOOGLE_APPLICATION_CREDENTIALS
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # version command
    _version_parser = subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of secret-sync"
    )

    # sync command
    sync_parser = subparsers.add_parser(
        "sync",
        help="Sync secrets to the destination",
        description="""
Read the secrets in scope for the sync environment from the source store and
create, update or delete secrets in the destination store to match.

Secrets are in scope when their environment (name suffix such as '-dev', or
the 'Environment' tag) belongs to the sync environment. When syncing to a
single environment the suffix is removed from the destination name.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _add_common_arguments(sync_parser)
    sync_parser.add_argument(
        "--filter-tags",
        help="Only sync secrets with these tags, format TAG1=VALUE1;TAG2=VALUE2 (overrides FILTER_TAGS)"
    )
    sync_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log the planned changes without writing anything"
    )

    # list command
    list_parser = subparsers.add_parser(
        "list",
        help="List secret names",
        description="""
List secret names and their environments. Secret values are never printed.

Sides:
  source      - secrets in scope for the sync environment (after trimming and tag filter)
  destination - every secret currently in the destination
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _add_common_arguments(list_parser)
    list_parser.add_argument(
        "--side",
        choices=["source", "destination"],
        default="source",
        help="Which store to list (default: source)"
    )

    args = parser.parse_args()

    if args.command == "version":
        cmd_version(args)
    elif args.command == "sync":
        cmd_sync(args)
    elif args.command == "list":
        cmd_list(args)
    else:
        parser.print_help()
        sys.exit(2)


if __name__ == "__main__":
    main()
