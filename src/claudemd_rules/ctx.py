from collections.abc import Iterable
from pathlib import Path

from claudemd_rules.discovery import DEFAULT_MAX_DEPTH, DEFAULT_RULES_FILENAME, discover_rules_files
from claudemd_rules.models import DiscoveredFile, ParsedRule, RulesSnapshot
from claudemd_rules.snapshot import build_rules_snapshot, snapshot_is_fresh


class RulesLoaderContext:
    """Context class for building rules snapshots of a project directory."""

    def __init__(  # noqa: PLR0913
        self,
        project_dir: str | Path,
        *,
        rules_filename: str | None = None,
        home_dir: str | Path | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        caching: bool = True,
        max_workers: int | None = None,
    ) -> None:
        """
        Initialize the context with the project directory.

        Args:
            project_dir: Path to the project directory containing CLAUDE.md.
            rules_filename: Optional filename for the rules documents (default: "CLAUDE.md").
            home_dir: Directory holding the user-global ``.claude`` folder
                (default: the current user's home).
            max_depth: How deep the subdirectory scan descends (default: 3).
            caching: Whether to reuse the last snapshot while no source file
                changed (default: True).
            max_workers: Thread pool size for reading and parsing files
                (default: None, sequential).

        Raises:
            NotADirectoryError: If project_dir is not a directory.
        """
        self.project_dir = Path(project_dir).resolve()
        if not self.project_dir.is_dir():
            msg = f"project_dir must be a directory, got: {self.project_dir}"
            raise NotADirectoryError(msg)
        self.rules_filename = rules_filename or DEFAULT_RULES_FILENAME
        self.home_dir = Path(home_dir) if home_dir is not None else None
        self.max_depth = max_depth
        self.caching = caching
        self.max_workers = max_workers
        self._cached: RulesSnapshot | None = None

    def discover(self) -> list[DiscoveredFile]:
        """Run discovery with this context's options."""
        return discover_rules_files(
            self.project_dir,
            home_dir=self.home_dir,
            max_depth=self.max_depth,
            rules_filename=self.rules_filename,
        )

    def load_snapshot(self) -> RulesSnapshot:
        """
        Return a snapshot of the project's rules.

        With caching enabled, the previous snapshot is returned as long as the
        set of discovered files and their modification times are unchanged.

        Returns:
            The current rules snapshot.
        """
        if self.caching and self._cached is not None:
            if snapshot_is_fresh(self._cached, self.discover()):
                return self._cached
            # Cache is stale, drop it
            self._cached = None

        snapshot = build_rules_snapshot(
            self.project_dir,
            max_workers=self.max_workers,
            home_dir=self.home_dir,
            max_depth=self.max_depth,
            rules_filename=self.rules_filename,
        )
        if self.caching:
            self._cached = snapshot
        return snapshot

    def load_rules(self, context_files: Iterable[str | Path] | None = None) -> list[ParsedRule]:
        """
        Return the rules relevant to a set of source files.

        Args:
            context_files: Optional list of source files for the conversation.
                Files whose frontmatter ``paths`` match none of them are left
                out. If None, all rules are returned.

        Returns:
            Rules in snapshot order.
        """
        snapshot = self.load_snapshot()
        normalized = self._normalize_context_files(context_files)
        if not normalized:
            return list(snapshot.all_rules)

        rules: list[ParsedRule] = []
        for rules_file in snapshot.files:
            if any(rules_file.applies_to(cf) for cf in normalized):
                rules.extend(rules_file.rules)
        return rules

    def invalidate_cache(self) -> None:
        """
        Drop the cached snapshot.

        Rarely needed: the cache already invalidates itself when files change.
        """
        self._cached = None

    def _normalize_context_files(self, context_files: Iterable[str | Path] | None) -> list[str]:
        """Normalize context files to Unix-style paths relative to the project dir."""
        if not context_files:
            return []

        normalized_files = []
        for cf in context_files:
            cf_path = Path(cf)
            if cf_path.is_absolute():
                try:
                    cf_path = cf_path.relative_to(self.project_dir)
                except ValueError:
                    # File is outside project dir, use as-is
                    pass
            normalized_files.append(str(cf_path).replace("\\", "/"))
        return normalized_files
