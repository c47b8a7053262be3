import os
import re
from pathlib import Path

from claudemd_rules.fences import FenceTracker
from claudemd_rules.models import ImportReference


# "@" not glued to a preceding word character (e-mail addresses), then the token
_IMPORT_PATTERN = re.compile(r"(?<!\w)@(\S+)")
_BACKTICK_RUN = re.compile(r"`+")
_TRAILING_PUNCTUATION = ".,;:!?)]}>\"'"


def code_span_ranges(line: str) -> list[tuple[int, int]]:
    """
    Locate inline code spans on a single line.

    A run of N backticks opens a span that is closed by the next run of exactly
    N backticks. A run without a matching closer is literal text.

    Args:
        line: A single physical line.

    Returns:
        List of (start, end) character offsets, end exclusive.
    """
    runs = [(m.start(), m.end()) for m in _BACKTICK_RUN.finditer(line)]
    spans = []
    i = 0
    while i < len(runs):
        start, end = runs[i]
        width = end - start
        for k in range(i + 1, len(runs)):
            if runs[k][1] - runs[k][0] == width:
                spans.append((start, runs[k][1]))
                i = k + 1
                break
        else:
            i += 1
    return spans


def find_line_imports(line: str) -> list[str]:
    """
    Find ``@path`` tokens on one line, skipping those inside inline code spans.

    Args:
        line: A single physical line.

    Returns:
        Import paths in order of appearance.
    """
    if "@" not in line:
        return []

    spans = code_span_ranges(line)
    found = []
    for match in _IMPORT_PATTERN.finditer(line):
        at = match.start()
        if any(start <= at < end for start, end in spans):
            continue
        token = match.group(1).rstrip(_TRAILING_PUNCTUATION)
        # A token can swallow a span that starts right after it
        token = token.split("`", 1)[0]
        if token:
            found.append(token)
    return found


def find_text_imports(text: str) -> list[str]:
    """Collect imports from newline-joined text, tracking code spans per line."""
    imports: list[str] = []
    for line in text.split("\n"):
        imports.extend(find_line_imports(line))
    return imports


def resolve_import_path(base_dir: str | Path, import_path: str) -> str | None:
    """
    Resolve an import path relative to the directory of the importing document.

    Args:
        base_dir: Directory containing the source document.
        import_path: The path as written after ``@``.

    Returns:
        Normalized absolute path, or None when the token is not a filesystem
        path (e.g. a URL).
    """
    if "://" in import_path:
        return None
    if import_path.startswith("~/"):
        return os.path.normpath(Path.home() / import_path[2:])
    return os.path.normpath(os.path.join(base_dir, import_path))


def extract_file_imports(content: str, source_file: str | Path) -> list[ImportReference]:
    """
    Extract every ``@path`` reference from a whole document.

    Lines inside fenced code blocks contribute nothing, and references inside
    inline code spans are skipped.

    Args:
        content: Normalized document text.
        source_file: Path of the document, used to resolve relative imports.

    Returns:
        References in document order with 1-based line numbers.
    """
    base_dir = os.path.dirname(str(source_file))
    fence = FenceTracker()
    references = []

    for number, line in enumerate(content.split("\n"), start=1):
        if fence.feed(line):
            continue
        for import_path in find_line_imports(line):
            references.append(
                ImportReference(
                    path=import_path,
                    resolved_path=resolve_import_path(base_dir, import_path),
                    line_number=number,
                )
            )
    return references
