"""Input validation for CLI arguments."""
import sys

from secret_sync.secrets.domains.errors import ConfigError
from secret_sync.secrets.domains.models import Environment
from secret_sync.secrets.domains.tag_filter import parse_filter_tags


def validate_environment_name(name: str) -> None:
    """
    Validate the sync environment name.

    Args:
        name: Environment name to validate

    Raises:
        SystemExit with code 2 if validation fails
    """
    if Environment.from_name(name) is not None:
        return

    if not name:
        print("Error: Environment cannot be empty", file=sys.stderr)
    else:
        print(f"Error: Invalid environment '{name}'", file=sys.stderr)
    print("\nAllowed environments:", file=sys.stderr)
    for env in Environment:
        kind = "group" if env.is_group else "environment"
        print(f"  {env.env_name} ({kind})", file=sys.stderr)
    sys.exit(2)


def validate_filter_tags(tags_string: str) -> None:
    """
    Validate a tag filter string.

    Args:
        tags_string: Filter in the format "TAG1=VALUE1;TAG2=VALUE2"

    Raises:
        SystemExit with code 2 if validation fails
    """
    try:
        parse_filter_tags(tags_string)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("\nExamples of valid filters:", file=sys.stderr)
        print("  ✓ team=payments", file=sys.stderr)
        print("  ✓ team=payments;tier=backend", file=sys.stderr)
        print("\nExamples of invalid filters:", file=sys.stderr)
        print("  ✗ team (missing value)", file=sys.stderr)
        print("  ✗ team=a=b (more than one '=')", file=sys.stderr)
        sys.exit(2)
