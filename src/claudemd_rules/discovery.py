import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from claudemd_rules.models import DiscoveredFile, RuleScope


logger = logging.getLogger(__name__)

DEFAULT_RULES_FILENAME = "CLAUDE.md"
DEFAULT_LOCAL_FILENAME = "CLAUDE.local.md"
DEFAULT_CONFIG_DIRNAME = ".claude"
DEFAULT_RULES_DIRNAME = "rules"
DEFAULT_MAX_DEPTH = 3
RULES_EXTENSIONS = frozenset({".md"})

IGNORED_DIRS = frozenset(
    {
        "node_modules",
        ".git",
        ".hg",
        ".svn",
        "dist",
        "build",
        ".next",
        ".nuxt",
        ".output",
        "vendor",
        "__pycache__",
        ".venv",
        "venv",
        ".contextlinter",
    }
)


@dataclass
class RulesDiscoverer:
    """
    Locate every rules document for a project.

    Candidates are visited in a fixed precedence order:

    1. ``~/.claude/CLAUDE.md`` (global)
    2. ``./CLAUDE.md`` (project)
    3. ``./CLAUDE.local.md`` (project_local)
    4. ``./.claude/CLAUDE.md`` (project)
    5. ``./.claude/rules/*.md`` in lexicographic order (project)
    6. ``CLAUDE.md`` in subdirectories up to ``max_depth`` levels down (subdirectory)

    Each candidate is canonicalized before being recorded, and a canonical path
    is recorded only once. Anything missing or unreadable is skipped.
    """

    project_root: str | Path
    home_dir: str | Path | None = None
    rules_filename: str = DEFAULT_RULES_FILENAME
    local_filename: str = DEFAULT_LOCAL_FILENAME
    config_dirname: str = DEFAULT_CONFIG_DIRNAME
    rules_dirname: str = DEFAULT_RULES_DIRNAME
    max_depth: int = DEFAULT_MAX_DEPTH
    _root: Path = field(init=False, repr=False)
    _found: list[DiscoveredFile] = field(default_factory=list, init=False, repr=False)
    _seen: set[str] = field(default_factory=set, init=False, repr=False)

    def __post_init__(self) -> None:
        self._root = Path(self.project_root).expanduser().resolve()

    def discover(self) -> list[DiscoveredFile]:
        """
        Run one discovery pass.

        Returns:
            Discovered files in precedence order. Empty if the project root is
            not a directory.
        """
        self._found = []
        self._seen = set()

        if not self._root.is_dir():
            logger.debug("Project root %s is not a directory", self._root)
            return []

        home = Path(self.home_dir) if self.home_dir is not None else Path.home()
        config_dir = self._root / self.config_dirname

        self._try_add(home / self.config_dirname / self.rules_filename, RuleScope.GLOBAL)
        self._try_add(self._root / self.rules_filename, RuleScope.PROJECT)
        self._try_add(self._root / self.local_filename, RuleScope.PROJECT_LOCAL)
        self._try_add(config_dir / self.rules_filename, RuleScope.PROJECT)
        self._discover_modular_rules(config_dir / self.rules_dirname)
        self._discover_subdirectory_rules(self._root, depth=1)

        return list(self._found)

    def _try_add(self, candidate: Path, scope: RuleScope) -> None:
        try:
            resolved = candidate.resolve(strict=True)
            if str(resolved) in self._seen:
                return
            stat_result = resolved.stat()
        except (OSError, RuntimeError):
            # Missing, inaccessible, or a symlink loop
            return

        if not resolved.is_file():
            return

        self._seen.add(str(resolved))
        self._found.append(
            DiscoveredFile(
                path=str(resolved),
                scope=scope,
                relative_path=self._relative_to_root(resolved),
                last_modified=stat_result.st_mtime,
                size_bytes=stat_result.st_size,
            )
        )
        logger.debug("Discovered %s rules file %s", scope.value, resolved)

    def _relative_to_root(self, path: Path) -> str:
        try:
            return Path(os.path.relpath(path, self._root)).as_posix()
        except ValueError:
            # Different drive on Windows
            return str(path)

    def _discover_modular_rules(self, rules_dir: Path) -> None:
        try:
            names = sorted(entry.name for entry in os.scandir(rules_dir))
        except OSError:
            return

        for name in names:
            if Path(name).suffix.lower() not in RULES_EXTENSIONS:
                continue
            self._try_add(rules_dir / name, RuleScope.PROJECT)

    def _discover_subdirectory_rules(self, directory: Path, depth: int) -> None:
        """Look for the rules file in each child directory, ``depth`` levels below the root."""
        if depth > self.max_depth:
            return

        try:
            entries = sorted(os.scandir(directory), key=lambda entry: entry.name)
        except OSError as exc:
            logger.debug("Skipping unreadable directory %s: %s", directory, exc)
            return

        for entry in entries:
            name = entry.name
            if name in IGNORED_DIRS:
                continue
            if name.startswith(".") and name != self.config_dirname:
                continue
            # Handled by the fixed locations above
            if name == self.config_dirname:
                continue

            try:
                if not entry.is_dir():
                    continue
            except OSError:
                continue

            child = Path(entry.path)
            try:
                if child.resolve() == self._root:
                    continue
            except (OSError, RuntimeError):
                continue

            self._try_add(child / self.rules_filename, RuleScope.SUBDIRECTORY)
            self._discover_subdirectory_rules(child, depth + 1)


def discover_rules_files(  # noqa: PLR0913
    project_root: str | Path,
    *,
    home_dir: str | Path | None = None,
    rules_filename: str = DEFAULT_RULES_FILENAME,
    local_filename: str = DEFAULT_LOCAL_FILENAME,
    config_dirname: str = DEFAULT_CONFIG_DIRNAME,
    rules_dirname: str = DEFAULT_RULES_DIRNAME,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[DiscoveredFile]:
    """
    Discover all rules files for a project.

    Args:
        project_root: Project directory to scan.
        home_dir: Directory holding the user-global ``.claude`` folder
            (default: the current user's home).
        rules_filename: Name of the rules document (default: "CLAUDE.md").
        local_filename: Name of the local override document
            (default: "CLAUDE.local.md").
        config_dirname: Name of the config directory (default: ".claude").
        rules_dirname: Name of the modular rules directory inside the config
            directory (default: "rules").
        max_depth: How many directory levels below the root the subdirectory
            scan descends (default: 3).

    Returns:
        Discovered files in precedence order.
    """
    discoverer = RulesDiscoverer(
        project_root,
        home_dir=home_dir,
        rules_filename=rules_filename,
        local_filename=local_filename,
        config_dirname=config_dirname,
        rules_dirname=rules_dirname,
        max_depth=max_depth,
    )
    return discoverer.discover()
