"""
Example demonstrating .claude/rules/ directory usage.

This example shows how scoped rules files in .claude/rules/ are picked up
and how frontmatter ``paths`` narrow them to matching source files.
"""

import shutil
import tempfile
from pathlib import Path

from claudemd_rules import RulesLoaderContext


# Typical .claude/rules/ directory structure:
#
# .claude/
#   rules/
#     01-general.md     # General coding standards
#     api.md            # REST API guidelines, scoped to src/api/**
#     frontend.md       # React rules, scoped to web/**
#
# Only files directly inside .claude/rules/ are read, in alphabetical order,
# so prefixes like `01-` control ordering.

project_dir = Path(tempfile.mkdtemp(prefix="claudemd_rules_scoped_"))
rules_dir = project_dir / ".claude" / "rules"
rules_dir.mkdir(parents=True)

(rules_dir / "01-general.md").write_text("- Keep functions small\n")
(rules_dir / "api.md").write_text("""---
paths:
  - "src/api/**/*.py"
---
# REST API Guidelines

- Use proper HTTP status codes
- Document endpoints with OpenAPI
""")
(rules_dir / "frontend.md").write_text("""---
paths: "web/**"
---
- Prefer function components
""")

try:
    ctx = RulesLoaderContext(project_dir)

    print("Rules Example")
    print("=" * 50)

    for context_file in [None, "src/api/users.py", "web/app.tsx", "README.md"]:
        rules = ctx.load_rules([context_file] if context_file else None)
        label = context_file or "(no context files)"
        print(f"\n{label}:")
        for rule in rules:
            print(f"  - {rule.text}")
finally:
    shutil.rmtree(project_dir)
