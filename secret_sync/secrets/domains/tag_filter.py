"""Tag filter parsing and matching."""
import logging
from typing import Any, Dict, List, Tuple

from .errors import ConfigError
from .models import Secret

logger = logging.getLogger(__name__)


def parse_filter_tags(tags_string: str) -> Dict[str, str]:
    """
    Parse a tag filter string into a mapping.

    Args:
        tags_string: Filter in the format "TAG1=VALUE1;TAG2=VALUE2"

    Returns:
        Dict of tag key -> required value (empty for an empty string)

    Raises:
        ConfigError: If a pair does not contain exactly one "="
    """
    tags: Dict[str, str] = {}
    if not tags_string:
        return tags

    for pair in tags_string.split(";"):
        parts = pair.split("=")
        if len(parts) != 2:
            raise ConfigError(
                f"Cannot parse tag filter '{pair}'\n"
                f"Expected format: TAG1=VALUE1;TAG2=VALUE2"
            )
        tags[parts[0]] = parts[1]

    return tags


def filter_by_tags(secrets: List[Secret], tags: Dict[str, Any]) -> Tuple[bool, List[Secret]]:
    """
    Keep only secrets carrying every given tag with a matching value.

    Args:
        secrets: Secrets to filter
        tags: Required tags; keys and values are compared as strings

    Returns:
        Tuple of (filter applied, secrets). With no tags the input list is
        returned unchanged and the flag is False.
    """
    if not tags:
        return False, secrets

    logger.info(f"Filtering secrets with tags {tags}")
    filtered = [
        secret for secret in secrets
        if all(secret.contains_tag_with_value(str(key), value) for key, value in tags.items())
    ]
    logger.debug(f"{len(filtered)} of {len(secrets)} secrets matched tag filter")
    return True, filtered
