import hashlib
import re
from dataclasses import dataclass, field
from pathlib import Path

from claudemd_rules.fences import FenceTracker, opens_fence
from claudemd_rules.frontmatter import split_frontmatter
from claudemd_rules.imports import find_text_imports
from claudemd_rules.models import ParsedRule, RuleEmphasis, RuleFormat, RuleScope


_HEADING = re.compile(r"^(#{1,6})\s+(.+)$")
_BULLET = re.compile(r"^([ \t]*)[-*]\s+(.+)$")
_HORIZONTAL_RULE = re.compile(r"^\s*([-*_])(?:\s*\1){2,}\s*$")
_LEADING_MARKER = re.compile(r"^[-*]\s+")

# Strong directives, matched anywhere in the text
_IMPORTANT_PATTERNS = (
    re.compile(r"\bIMPORTANT\b", re.IGNORECASE),
    re.compile(r"\bMUST\b"),
    re.compile(r"\bNEVER\b", re.IGNORECASE),
    re.compile(r"\bDO NOT\b", re.IGNORECASE),
    re.compile(r"\bDON[’']T\b", re.IGNORECASE),
    re.compile(r"\bYOU MUST\b", re.IGNORECASE),
    re.compile(r"\bREQUIRED\b", re.IGNORECASE),
    re.compile(r"\bCRITICAL\b", re.IGNORECASE),
)

# Soft discouragement, only consulted when no strong directive matched
_NEGATIVE_PATTERNS = (
    re.compile(r"\bavoid\b", re.IGNORECASE),
    re.compile(r"\brefrain from\b", re.IGNORECASE),
    re.compile(r"\bshould not\b", re.IGNORECASE),
    re.compile(r"\bshouldn[’']t\b", re.IGNORECASE),
)

_EMPHATIC_PREFIX = re.compile(
    r"^(?:\*\*|__)?(?:IMPORTANT|CRITICAL|REQUIRED|NEVER|YOU MUST)\b", re.IGNORECASE
)


def generate_rule_id(source_file: str, line_start: int, text: str) -> str:
    """
    Compute the stable identifier of a rule.

    The NUL separators keep the encoding injective since paths cannot contain
    NUL and the line number is all digits.
    """
    digest = hashlib.sha256(f"{source_file}\0{line_start}\0{text}".encode("utf-8", "surrogatepass"))
    return digest.hexdigest()[:16]


def detect_format(text: str, from_bullet: bool) -> RuleFormat:
    """
    Classify the surface form of a rule.

    Args:
        text: Rule text with the bullet marker removed.
        from_bullet: Whether the rule came from a bullet item.

    Returns:
        ``COMMAND`` for text opening with a backtick, ``EMPHATIC`` for an
        emphatic keyword prefix, otherwise ``BULLET_POINT`` or ``PARAGRAPH``.
    """
    if text.startswith("`"):
        return RuleFormat.COMMAND
    if _EMPHATIC_PREFIX.match(text):
        return RuleFormat.EMPHATIC
    if from_bullet:
        return RuleFormat.BULLET_POINT
    return RuleFormat.PARAGRAPH


def detect_emphasis(text: str) -> RuleEmphasis:
    """Classify a rule as important, negative or normal by its keywords."""
    # Strong directives win over soft discouragement
    if any(pattern.search(text) for pattern in _IMPORTANT_PATTERNS):
        return RuleEmphasis.IMPORTANT
    if any(pattern.search(text) for pattern in _NEGATIVE_PATTERNS):
        return RuleEmphasis.NEGATIVE
    return RuleEmphasis.NORMAL


def _indent_width(line: str) -> int:
    return len(line) - len(line.lstrip(" \t"))


def _is_skippable(stripped: str) -> bool:
    return stripped.startswith("<!--") or _HORIZONTAL_RULE.match(stripped) is not None


@dataclass
class DocumentParser:
    """
    Single forward pass turning one document into rule records.

    The heading stack holds (level, title) pairs for the path from the
    document root to the current position; every emitted rule gets a tuple
    copy of it.
    """

    source_file: str
    source_scope: RuleScope
    _headings: list[tuple[int, str]] = field(default_factory=list, init=False)
    _rules: list[ParsedRule] = field(default_factory=list, init=False)

    def parse(self, content: str) -> list[ParsedRule]:
        """
        Parse document text into rules.

        Args:
            content: Text already normalized to ``\\n`` line endings.

        Returns:
            Rules in document order.
        """
        self._headings = []
        self._rules = []

        lines = content.split("\n")
        _, index = split_frontmatter(content)
        fence = FenceTracker()

        while index < len(lines):
            line = lines[index]

            if fence.feed(line):
                index += 1
                continue

            stripped = line.strip()
            if not stripped or _is_skippable(stripped):
                index += 1
                continue

            heading = _HEADING.match(line)
            if heading:
                self._push_heading(len(heading.group(1)), heading.group(2).strip())
                index += 1
                continue

            if _BULLET.match(line):
                index = self._collect_bullet(lines, index)
            else:
                index = self._collect_paragraph(lines, index)

        return list(self._rules)

    def _push_heading(self, level: int, title: str) -> None:
        while self._headings and self._headings[-1][0] >= level:
            self._headings.pop()
        self._headings.append((level, title))

    def _collect_bullet(self, lines: list[str], start: int) -> int:
        """Group a bullet with everything indented deeper than it; return the next index."""
        base_indent = _indent_width(lines[start])
        collected = [lines[start].strip()]
        end = start

        for index in range(start + 1, len(lines)):
            line = lines[index]
            if not line.strip():
                break
            if _HEADING.match(line) or opens_fence(line):
                break
            if _indent_width(line) <= base_indent:
                break
            collected.append(line.strip())
            end = index

        self._emit(collected, start, end, from_bullet=True)
        return end + 1

    def _collect_paragraph(self, lines: list[str], start: int) -> int:
        collected = []
        end = start

        for index in range(start, len(lines)):
            line = lines[index]
            stripped = line.strip()
            if not stripped or _is_skippable(stripped):
                break
            if _HEADING.match(line) or _BULLET.match(line) or opens_fence(line):
                break
            collected.append(stripped)
            end = index

        self._emit(collected, start, end, from_bullet=False)
        return end + 1

    def _emit(self, collected: list[str], start: int, end: int, from_bullet: bool) -> None:
        text = "\n".join(collected)
        if from_bullet:
            text = _LEADING_MARKER.sub("", text, count=1)
        text = text.strip()
        if not text:
            return

        hierarchy = tuple(title for _, title in self._headings)
        line_start = start + 1
        self._rules.append(
            ParsedRule(
                id=generate_rule_id(self.source_file, line_start, text),
                text=text,
                section=hierarchy[-1] if hierarchy else None,
                section_hierarchy=hierarchy,
                source_file=self.source_file,
                source_scope=self.source_scope,
                line_start=line_start,
                line_end=end + 1,
                format=detect_format(text, from_bullet),
                emphasis=detect_emphasis(text),
                imports=tuple(find_text_imports(text)),
            )
        )


def parse_markdown(
    content: str,
    source_file: str | Path,
    source_scope: RuleScope | str,
) -> list[ParsedRule]:
    """
    Parse freeform Markdown into structured rules.

    Args:
        content: Document text with ``\\n`` line endings.
        source_file: Path recorded on every rule and mixed into its id.
        source_scope: Scope of the document.

    Returns:
        Rules in document order.
    """
    parser = DocumentParser(str(source_file), RuleScope(source_scope))
    return parser.parse(content)
