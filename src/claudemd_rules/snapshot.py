import logging
from collections import Counter
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from claudemd_rules.discovery import (
    DEFAULT_CONFIG_DIRNAME,
    DEFAULT_RULES_DIRNAME,
    discover_rules_files,
)
from claudemd_rules.frontmatter import split_frontmatter
from claudemd_rules.imports import extract_file_imports
from claudemd_rules.models import (
    DiscoveredFile,
    ParsedRule,
    RuleFormat,
    RulesFile,
    RulesSnapshot,
    RulesStats,
    RuleScope,
)
from claudemd_rules.parser import parse_markdown


logger = logging.getLogger(__name__)

_MODULAR_PREFIX = f"{DEFAULT_CONFIG_DIRNAME}/{DEFAULT_RULES_DIRNAME}/"


def normalize_newlines(content: str) -> str:
    """Convert ``\\r\\n`` and lone ``\\r`` line endings to ``\\n``."""
    return content.replace("\r\n", "\n").replace("\r", "\n")


def read_rules_text(path: str | Path) -> str:
    """
    Read a rules document as normalized text.

    Raises:
        OSError: If the file cannot be read.
    """
    raw = Path(path).read_bytes()
    try:
        content = raw.decode("utf-8")
    except UnicodeDecodeError:
        content = raw.decode("latin-1")
    return normalize_newlines(content)


def parse_rules_file(file: DiscoveredFile) -> RulesFile | None:
    """
    Read and parse one discovered file.

    Returns:
        The parsed file, or None if it disappeared or became unreadable after
        discovery.
    """
    try:
        content = read_rules_text(file.path)
    except OSError as exc:
        logger.debug("Skipping %s, no longer readable: %s", file.path, exc)
        return None

    frontmatter, _ = split_frontmatter(content)
    return RulesFile(
        path=file.path,
        scope=file.scope,
        relative_path=file.relative_path,
        content=content,
        rules=tuple(parse_markdown(content, file.path, file.scope)),
        imports=tuple(extract_file_imports(content, file.path)),
        last_modified=file.last_modified,
        size_bytes=file.size_bytes,
        frontmatter=frontmatter,
    )


def compute_stats(files: Iterable[RulesFile], all_rules: Iterable[ParsedRule]) -> RulesStats:
    """
    Aggregate counts over parsed files and their rules.

    Args:
        files: Parsed files in discovery order.
        all_rules: Every rule of those files.

    Returns:
        Stats whose per-scope and per-format counts list every enum value,
        including those with a zero count.
    """
    files = list(files)
    all_rules = list(all_rules)

    scope_counts = Counter(rule.source_scope.value for rule in all_rules)
    format_counts = Counter(rule.format.value for rule in all_rules)
    by_scope = {scope.value: scope_counts[scope.value] for scope in RuleScope}
    by_format = {fmt.value: format_counts[fmt.value] for fmt in RuleFormat}

    return RulesStats(
        total_files=len(files),
        total_rules=len(all_rules),
        total_lines=sum(f.content.count("\n") + 1 for f in files),
        total_size_bytes=sum(f.size_bytes for f in files),
        import_count=sum(len(f.imports) for f in files),
        by_scope=by_scope,
        by_format=by_format,
        has_global_rules=by_scope[RuleScope.GLOBAL.value] > 0,
        has_local_rules=by_scope[RuleScope.PROJECT_LOCAL.value] > 0,
        has_modular_rules=any(f.relative_path.startswith(_MODULAR_PREFIX) for f in files),
    )


def build_rules_snapshot(
    project_root: str | Path,
    *,
    max_workers: int | None = None,
    **discovery_options: Any,
) -> RulesSnapshot:
    """
    Discover, read and parse every rules document of a project.

    Args:
        project_root: Project directory.
        max_workers: Read and parse files on a thread pool of this size.
            None or 1 processes files sequentially. Output order is the same
            either way.
        **discovery_options: Forwarded to ``discover_rules_files``
            (``home_dir``, ``rules_filename``, ``local_filename``,
            ``config_dirname``, ``rules_dirname``, ``max_depth``).

    Returns:
        A snapshot with files in discovery order and rules in file order.
    """
    discovered = discover_rules_files(project_root, **discovery_options)

    if max_workers is not None and max_workers > 1 and len(discovered) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            parsed = list(executor.map(parse_rules_file, discovered))
    else:
        parsed = [parse_rules_file(file) for file in discovered]

    files = tuple(f for f in parsed if f is not None)
    all_rules = tuple(rule for f in files for rule in f.rules)
    stats = compute_stats(files, all_rules)

    logger.info(
        "Built rules snapshot for %s: %d files, %d rules",
        project_root,
        stats.total_files,
        stats.total_rules,
    )

    return RulesSnapshot(
        project_root=str(project_root),
        snapshot_at=datetime.now(timezone.utc).isoformat(),
        files=files,
        all_rules=all_rules,
        stats=stats,
    )


def snapshot_is_fresh(
    snapshot: RulesSnapshot,
    current: Iterable[DiscoveredFile] | Mapping[str, float],
) -> bool:
    """
    Check a snapshot against the current state of its source files.

    Args:
        snapshot: A previously built snapshot.
        current: A fresh discovery result, or a path -> mtime mapping.

    Returns:
        False if the set of paths differs or any modification time differs
        from the one recorded when the snapshot was built, in either direction.
    """
    if isinstance(current, Mapping):
        current_mtimes = dict(current)
    else:
        current_mtimes = {f.path: f.last_modified for f in current}

    cached_mtimes = snapshot.file_mtimes()
    if set(cached_mtimes) != set(current_mtimes):
        return False
    return all(mtime == cached_mtimes[path] for path, mtime in current_mtimes.items())
