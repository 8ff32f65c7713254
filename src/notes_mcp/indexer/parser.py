"""Parser for YAML frontmatter at the top of Markdown notes."""

import re
from dataclasses import dataclass
from typing import Any

import yaml

# Leading block delimited by "---" lines; tolerates a BOM, CRLF and an empty block
FRONTMATTER_PATTERN = re.compile(
    r"\A\ufeff?---[ \t]*\r?\n(?P<yaml>(?:.*?\r?\n)?)---[ \t]*(?:\r?\n|\Z)",
    re.DOTALL,
)


class FrontmatterError(ValueError):
    """Raised when a frontmatter block exists but cannot be parsed."""

    pass


@dataclass
class Frontmatter:
    """Frontmatter attributes and the body that follows them."""

    attrs: dict[str, Any] | None
    body: str

    @property
    def tags(self) -> list[str]:
        """Tags from the attributes, normalized to a list of strings."""
        if not self.attrs:
            return []
        tags = self.attrs.get("tags")
        if tags is None:
            return []
        if isinstance(tags, list):
            return [str(t) for t in tags]
        return [str(tags)]


def has_frontmatter(content: str) -> bool:
    """Check whether content starts with a YAML frontmatter block."""
    return FRONTMATTER_PATTERN.match(content) is not None


def extract_frontmatter(content: str) -> Frontmatter:
    """
    Separate YAML frontmatter from the Markdown body.

    Args:
        content: The full Markdown content

    Returns:
        Frontmatter with attrs=None and the trimmed content when there is no
        frontmatter block, otherwise the parsed mapping and the trimmed body.

    Raises:
        FrontmatterError: If the block is not valid YAML or not a mapping.
    """
    match = FRONTMATTER_PATTERN.match(content)
    if match is None:
        return Frontmatter(attrs=None, body=content.strip())

    try:
        raw = yaml.safe_load(match.group("yaml"))
    except yaml.YAMLError as e:
        raise FrontmatterError(f"Invalid YAML frontmatter: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise FrontmatterError(
            f"Frontmatter must be a mapping, got {type(raw).__name__}"
        )

    return Frontmatter(attrs=raw, body=content[match.end() :].strip())
