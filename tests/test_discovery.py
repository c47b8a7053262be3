import os
from pathlib import Path

import pytest

from claudemd_rules import RuleScope, RulesDiscoverer, discover_rules_files


@pytest.fixture
def temp_project(tmp_path: Path) -> Path:
    """Create a temporary project directory."""
    project_dir = tmp_path / "test_project"
    project_dir.mkdir()
    return project_dir.resolve()


@pytest.fixture
def home_dir(tmp_path: Path) -> Path:
    """Create an isolated home directory."""
    home = tmp_path / "home"
    home.mkdir()
    return home


def create_file(root: Path, relative_path: str, content: str = "# Rules\n") -> Path:
    path = root / relative_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


def relative_paths(root: Path, home: Path) -> list[str]:
    return [f.relative_path for f in discover_rules_files(root, home_dir=home)]


def test_finds_root_level_files(temp_project: Path, home_dir: Path) -> None:
    """Test the fixed project-root locations and their scopes."""
    create_file(temp_project, "CLAUDE.md")
    create_file(temp_project, "CLAUDE.local.md")
    create_file(temp_project, ".claude/CLAUDE.md")

    files = discover_rules_files(temp_project, home_dir=home_dir)

    assert [(f.relative_path, f.scope) for f in files] == [
        ("CLAUDE.md", RuleScope.PROJECT),
        ("CLAUDE.local.md", RuleScope.PROJECT_LOCAL),
        (".claude/CLAUDE.md", RuleScope.PROJECT),
    ]


def test_file_metadata(temp_project: Path, home_dir: Path) -> None:
    """Test that paths are canonical and stat data is recorded."""
    path = create_file(temp_project, "CLAUDE.md", "- one rule\n")

    files = discover_rules_files(temp_project, home_dir=home_dir)

    assert files[0].path == str(path.resolve())
    assert Path(files[0].path).is_absolute()
    assert files[0].size_bytes == len("- one rule\n")
    assert files[0].last_modified == pytest.approx(path.stat().st_mtime)


def test_finds_global_file_first(temp_project: Path, home_dir: Path) -> None:
    """Test that the home-directory file comes first with global scope."""
    create_file(temp_project, "CLAUDE.md")
    create_file(home_dir, ".claude/CLAUDE.md")

    files = discover_rules_files(temp_project, home_dir=home_dir)

    assert files[0].scope == RuleScope.GLOBAL
    assert files[0].path == str((home_dir / ".claude" / "CLAUDE.md").resolve())
    assert files[1].relative_path == "CLAUDE.md"


def test_global_uses_user_home_by_default(
    temp_project: Path, home_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Test that the user's home directory is consulted when none is given."""
    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.setenv("USERPROFILE", str(home_dir))
    create_file(home_dir, ".claude/CLAUDE.md")

    files = discover_rules_files(temp_project)

    assert [f.scope for f in files] == [RuleScope.GLOBAL]


def test_modular_rules_sorted_and_filtered(temp_project: Path, home_dir: Path) -> None:
    """Test that .claude/rules/*.md are found in lexicographic order."""
    for name in ["style.md", "testing.md", "deploy.md", "config.json", "notes.txt"]:
        create_file(temp_project, f".claude/rules/{name}")

    files = discover_rules_files(temp_project, home_dir=home_dir)

    assert [f.relative_path for f in files] == [
        ".claude/rules/deploy.md",
        ".claude/rules/style.md",
        ".claude/rules/testing.md",
    ]
    assert all(f.scope == RuleScope.PROJECT for f in files)


def test_precedence_order(temp_project: Path, home_dir: Path) -> None:
    """Test the full fixed ordering of locations."""
    create_file(temp_project, "pkg/CLAUDE.md")
    create_file(temp_project, ".claude/rules/a.md")
    create_file(temp_project, ".claude/CLAUDE.md")
    create_file(temp_project, "CLAUDE.local.md")
    create_file(temp_project, "CLAUDE.md")
    create_file(home_dir, ".claude/CLAUDE.md")

    files = discover_rules_files(temp_project, home_dir=home_dir)

    assert [f.scope for f in files] == [
        RuleScope.GLOBAL,
        RuleScope.PROJECT,
        RuleScope.PROJECT_LOCAL,
        RuleScope.PROJECT,
        RuleScope.PROJECT,
        RuleScope.SUBDIRECTORY,
    ]
    assert files[-1].relative_path == "pkg/CLAUDE.md"


def test_subdirectory_files(temp_project: Path, home_dir: Path) -> None:
    """Test that nested CLAUDE.md files get subdirectory scope."""
    create_file(temp_project, "packages/ui/CLAUDE.md")
    create_file(temp_project, "apps/web/CLAUDE.md")

    files = discover_rules_files(temp_project, home_dir=home_dir)

    assert [f.relative_path for f in files] == ["apps/web/CLAUDE.md", "packages/ui/CLAUDE.md"]
    assert all(f.scope == RuleScope.SUBDIRECTORY for f in files)


def test_depth_bound(temp_project: Path, home_dir: Path) -> None:
    """Test that only depths 1 to 3 are scanned."""
    create_file(temp_project, "a/CLAUDE.md")
    create_file(temp_project, "a/b/CLAUDE.md")
    create_file(temp_project, "a/b/c/CLAUDE.md")
    create_file(temp_project, "a/b/c/d/CLAUDE.md")

    paths = relative_paths(temp_project, home_dir)

    assert "a/CLAUDE.md" in paths
    assert "a/b/CLAUDE.md" in paths
    assert "a/b/c/CLAUDE.md" in paths
    assert "a/b/c/d/CLAUDE.md" not in paths


def test_custom_depth(temp_project: Path, home_dir: Path) -> None:
    """Test that the depth limit is configurable."""
    create_file(temp_project, "a/CLAUDE.md")
    create_file(temp_project, "a/b/CLAUDE.md")

    files = RulesDiscoverer(temp_project, home_dir=home_dir, max_depth=1).discover()

    assert [f.relative_path for f in files] == ["a/CLAUDE.md"]


@pytest.mark.parametrize(
    "directory",
    ["node_modules/pkg", ".git", "dist", "build", "vendor", ".venv", "__pycache__", ".hidden"],
)
def test_ignored_directories(temp_project: Path, home_dir: Path, directory: str) -> None:
    """Test that ignored and dot-prefixed directories are never entered."""
    create_file(temp_project, f"{directory}/CLAUDE.md")
    create_file(temp_project, f"{directory}/inner/CLAUDE.md")

    assert relative_paths(temp_project, home_dir) == []


def test_claude_dir_not_rescanned(temp_project: Path, home_dir: Path) -> None:
    """Test that .claude is only visited through its fixed locations."""
    create_file(temp_project, ".claude/CLAUDE.md")
    create_file(temp_project, ".claude/sub/CLAUDE.md")

    files = discover_rules_files(temp_project, home_dir=home_dir)

    assert [f.relative_path for f in files] == [".claude/CLAUDE.md"]


def test_symlink_dedup(temp_project: Path, home_dir: Path) -> None:
    """Test that two paths resolving to the same file produce one entry."""
    target = create_file(temp_project, "docs/CLAUDE.md")
    try:
        os.symlink(target, temp_project / "CLAUDE.md")
    except (OSError, NotImplementedError):
        pytest.skip("symlinks not supported")

    files = discover_rules_files(temp_project, home_dir=home_dir)

    assert len(files) == 1
    assert files[0].path == str(target.resolve())
    assert files[0].scope == RuleScope.PROJECT


def test_symlinked_directory_cycle(temp_project: Path, home_dir: Path) -> None:
    """Test that a directory link back to the root does not duplicate files."""
    create_file(temp_project, "CLAUDE.md")
    create_file(temp_project, "a/CLAUDE.md")
    try:
        os.symlink(temp_project, temp_project / "a" / "loop", target_is_directory=True)
    except (OSError, NotImplementedError):
        pytest.skip("symlinks not supported")

    paths = relative_paths(temp_project, home_dir)

    assert paths == ["CLAUDE.md", "a/CLAUDE.md"]


def test_rules_file_directory_skipped(temp_project: Path, home_dir: Path) -> None:
    """Test that a directory named like the rules file is not recorded."""
    (temp_project / "CLAUDE.md").mkdir()

    assert relative_paths(temp_project, home_dir) == []


def test_missing_root_returns_empty(tmp_path: Path, home_dir: Path) -> None:
    """Test that a non-existent root is not an error."""
    create_file(home_dir, ".claude/CLAUDE.md")

    assert discover_rules_files(tmp_path / "missing", home_dir=home_dir) == []


@pytest.mark.skipif(
    not hasattr(os, "geteuid") or os.geteuid() == 0, reason="needs non-root permissions"
)
def test_unreadable_directory_skipped(temp_project: Path, home_dir: Path) -> None:
    """Test that a permission error on one directory does not abort discovery."""
    create_file(temp_project, "open/CLAUDE.md")
    create_file(temp_project, "locked/inner/CLAUDE.md")
    locked = temp_project / "locked"
    locked.chmod(0)
    try:
        paths = relative_paths(temp_project, home_dir)
    finally:
        locked.chmod(0o755)

    assert paths == ["open/CLAUDE.md"]


def test_custom_location_names(temp_project: Path, home_dir: Path) -> None:
    """Test overriding the local, config and modular directory names."""
    create_file(temp_project, "CLAUDE.md")
    create_file(temp_project, "CLAUDE.local.md")
    create_file(temp_project, "AGENTS.local.md")
    create_file(temp_project, ".agents/CLAUDE.md")
    create_file(temp_project, ".agents/guides/style.md")
    create_file(temp_project, ".claude/rules/ignored.md")

    files = discover_rules_files(
        temp_project,
        home_dir=home_dir,
        local_filename="AGENTS.local.md",
        config_dirname=".agents",
        rules_dirname="guides",
    )

    assert [f.relative_path for f in files] == [
        "CLAUDE.md",
        "AGENTS.local.md",
        ".agents/CLAUDE.md",
        ".agents/guides/style.md",
    ]
    assert files[1].scope == RuleScope.PROJECT_LOCAL


def test_options_are_keyword_only(temp_project: Path, home_dir: Path) -> None:
    """Test that discovery options cannot be passed positionally."""
    with pytest.raises(TypeError):
        discover_rules_files(temp_project, home_dir)  # type: ignore[misc]
