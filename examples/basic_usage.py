"""
Example demonstrating the claudemd-rules library.

This script creates a sample project structure and shows how to use
the RulesLoaderContext to extract rules from CLAUDE.md files.
"""

import shutil
import tempfile
from pathlib import Path

from claudemd_rules import RulesLoaderContext


def create_example_project() -> Path:
    """Create a temporary example project."""
    project_dir = Path(tempfile.mkdtemp(prefix="claudemd_rules_example_"))

    (project_dir / "CLAUDE.md").write_text("""# My Project

## Style
- Use black for formatting
  - line length 100
- Prefer dataclasses over dicts

## Testing
IMPORTANT: run `pytest` before every push.

```bash
# not a rule
pytest -q
```

See @docs/testing.md for fixtures.
""")

    rules_dir = project_dir / ".claude" / "rules"
    rules_dir.mkdir(parents=True)
    (rules_dir / "security.md").write_text("- NEVER commit secrets\n- avoid shelling out\n")

    api_dir = project_dir / "api"
    api_dir.mkdir()
    (api_dir / "CLAUDE.md").write_text("Handlers live in `api/handlers`, one per resource.\n")

    return project_dir


def main() -> None:
    """Run the example."""
    project_dir = create_example_project()

    try:
        print(f"Project created at: {project_dir}\n")

        ctx = RulesLoaderContext(project_dir)
        snapshot = ctx.load_snapshot()

        for rules_file in snapshot.files:
            print(f"{rules_file.relative_path} ({rules_file.scope.value})")
            for rule in rules_file.rules:
                section = " > ".join(rule.section_hierarchy) or "-"
                print(
                    f"  [{rule.id}] L{rule.line_start}-{rule.line_end} "
                    f"{rule.format.value}/{rule.emphasis.value} ({section})"
                )
                print(f"      {rule.text!r}")

        stats = snapshot.stats
        print("\n" + "=" * 60)
        print(f"Files: {stats.total_files}  Rules: {stats.total_rules}  Imports: {stats.import_count}")
        print(f"By scope:  {dict(stats.by_scope)}")
        print(f"By format: {dict(stats.by_format)}")
        print("=" * 60)

    finally:
        shutil.rmtree(project_dir)


if __name__ == "__main__":
    main()
