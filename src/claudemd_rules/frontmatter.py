import logging
import re
from typing import Any

import yaml


logger = logging.getLogger(__name__)

_DELIMITER = "---"


def split_frontmatter(content: str) -> tuple[dict[str, Any] | None, int]:
    """
    Parse a leading YAML frontmatter block.

    Args:
        content: Normalized document text.

    Returns:
        Tuple of (frontmatter mapping or None, number of lines the block spans).
        When there is no usable frontmatter the line count is 0 so callers can
        treat every line as body.
    """
    if not content.startswith(_DELIMITER + "\n"):
        return None, 0

    lines = content.split("\n")
    for index in range(1, len(lines)):
        if lines[index].rstrip() == _DELIMITER:
            break
    else:
        return None, 0

    try:
        data = yaml.safe_load("\n".join(lines[1:index]))
    except (yaml.YAMLError, ValueError, TypeError, RecursionError):
        # Bad dates and runaway nesting surface as plain exceptions from safe_load
        logger.debug("Ignoring unparsable frontmatter block")
        return None, 0

    if not isinstance(data, dict):
        return None, 0
    return data, index + 1


def glob_match(path: str, pattern: str) -> bool:
    """
    Match a path against a glob pattern, supporting ** for recursive directories.

    Args:
        path: The file path to match
        pattern: The glob pattern (e.g., "src/**/*.py")

    Returns:
        True if the path matches the pattern
    """
    parts = pattern.split("/")
    path_parts = path.split("/")

    i = 0  # pattern index
    j = 0  # path index

    while i < len(parts) and j < len(path_parts):
        if parts[i] == "**":
            # ** matches zero or more path segments
            if i == len(parts) - 1:
                return True
            rest = "/".join(parts[i + 1 :])
            return any(
                glob_match("/".join(path_parts[k:]), rest) for k in range(j, len(path_parts))
            )
        if _match_segment(path_parts[j], parts[i]):
            i += 1
            j += 1
        else:
            return False

    return i == len(parts) and j == len(path_parts)


def _match_segment(segment: str, pattern: str) -> bool:
    """Match a single path segment against a pattern with * and ? wildcards."""
    regex = re.escape(pattern)
    regex = regex.replace(r"\*", "[^/]*")
    regex = regex.replace(r"\?", ".")
    return re.fullmatch(regex, segment) is not None
