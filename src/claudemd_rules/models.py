import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

from claudemd_rules.frontmatter import glob_match


class RuleScope(str, Enum):
    """Where a rules document was found."""

    GLOBAL = "global"
    PROJECT = "project"
    PROJECT_LOCAL = "project_local"
    SUBDIRECTORY = "subdirectory"


class RuleFormat(str, Enum):
    """Surface form of a rule. ``HEADING_SECTION`` is never produced by body parsing."""

    HEADING_SECTION = "heading_section"
    BULLET_POINT = "bullet_point"
    PARAGRAPH = "paragraph"
    COMMAND = "command"
    EMPHATIC = "emphatic"


class RuleEmphasis(str, Enum):
    NORMAL = "normal"
    IMPORTANT = "important"
    NEGATIVE = "negative"


@dataclass(frozen=True)
class DiscoveredFile:
    """A candidate rules document located by discovery."""

    path: str
    scope: RuleScope
    relative_path: str
    last_modified: float
    size_bytes: int

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready dict with camelCase keys."""
        return {
            "path": self.path,
            "scope": self.scope.value,
            "relativePath": self.relative_path,
            "lastModified": self.last_modified,
            "sizeBytes": self.size_bytes,
        }


@dataclass(frozen=True)
class ParsedRule:
    """One atomic rule extracted from a document."""

    id: str
    text: str
    section: str | None
    section_hierarchy: tuple[str, ...]
    source_file: str
    source_scope: RuleScope
    line_start: int
    line_end: int
    format: RuleFormat
    emphasis: RuleEmphasis
    imports: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready dict with camelCase keys."""
        return {
            "id": self.id,
            "text": self.text,
            "section": self.section,
            "sectionHierarchy": list(self.section_hierarchy),
            "sourceFile": self.source_file,
            "sourceScope": self.source_scope.value,
            "lineStart": self.line_start,
            "lineEnd": self.line_end,
            "format": self.format.value,
            "emphasis": self.emphasis.value,
            "imports": list(self.imports),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ParsedRule":
        """
        Rebuild a rule from its ``to_dict`` form.

        Args:
            data: Mapping with camelCase keys.

        Returns:
            The restored rule.
        """
        return cls(
            id=data["id"],
            text=data["text"],
            section=data.get("section"),
            section_hierarchy=tuple(data.get("sectionHierarchy", ())),
            source_file=data["sourceFile"],
            source_scope=RuleScope(data["sourceScope"]),
            line_start=data["lineStart"],
            line_end=data["lineEnd"],
            format=RuleFormat(data["format"]),
            emphasis=RuleEmphasis(data["emphasis"]),
            imports=tuple(data.get("imports", ())),
        )


@dataclass(frozen=True)
class ImportReference:
    """An ``@path`` reference found in a document."""

    path: str
    resolved_path: str | None
    line_number: int

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready dict with camelCase keys."""
        return {
            "path": self.path,
            "resolvedPath": self.resolved_path,
            "lineNumber": self.line_number,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ImportReference":
        """Rebuild a reference from ``to_dict`` output."""
        return cls(
            path=data["path"],
            resolved_path=data.get("resolvedPath"),
            line_number=data["lineNumber"],
        )


@dataclass(frozen=True)
class RulesFile:
    """A parsed rules document."""

    path: str
    scope: RuleScope
    relative_path: str
    content: str
    rules: tuple[ParsedRule, ...]
    imports: tuple[ImportReference, ...]
    last_modified: float
    size_bytes: int
    frontmatter: Mapping[str, Any] | None = field(default=None, hash=False)

    def __post_init__(self) -> None:
        if self.frontmatter is not None:
            object.__setattr__(self, "frontmatter", MappingProxyType(dict(self.frontmatter)))

    @property
    def paths(self) -> tuple[str, ...]:
        """Glob patterns from the frontmatter ``paths`` key, if any."""
        if not self.frontmatter or "paths" not in self.frontmatter:
            return ()
        patterns = self.frontmatter["paths"]
        if not isinstance(patterns, list):
            patterns = [patterns]
        return tuple(str(p) for p in patterns if p is not None)

    def applies_to(self, path: str | Path) -> bool:
        """
        Check whether this file's rules apply to a project-relative path.

        Files without ``paths`` in their frontmatter apply everywhere.
        """
        patterns = self.paths
        if not patterns:
            return True
        normalized = str(path).replace("\\", "/")
        return any(glob_match(normalized, pattern) for pattern in patterns)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready dict; the frontmatter is copied into a plain dict."""
        return {
            "path": self.path,
            "scope": self.scope.value,
            "relativePath": self.relative_path,
            "content": self.content,
            "rules": [rule.to_dict() for rule in self.rules],
            "imports": [ref.to_dict() for ref in self.imports],
            "lastModified": self.last_modified,
            "sizeBytes": self.size_bytes,
            "frontmatter": dict(self.frontmatter) if self.frontmatter is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RulesFile":
        """
        Rebuild a parsed file from its ``to_dict`` form.

        Args:
            data: Mapping with camelCase keys.

        Returns:
            The restored file, rules and imports included.
        """
        return cls(
            path=data["path"],
            scope=RuleScope(data["scope"]),
            relative_path=data["relativePath"],
            content=data["content"],
            rules=tuple(ParsedRule.from_dict(r) for r in data.get("rules", ())),
            imports=tuple(ImportReference.from_dict(i) for i in data.get("imports", ())),
            last_modified=data["lastModified"],
            size_bytes=data["sizeBytes"],
            frontmatter=data.get("frontmatter"),
        )


def _zero_counts(enum_type: type[Enum]) -> dict[str, int]:
    return {member.value: 0 for member in enum_type}


@dataclass(frozen=True)
class RulesStats:
    """Aggregate counts over a snapshot."""

    total_files: int = 0
    total_rules: int = 0
    total_lines: int = 0
    total_size_bytes: int = 0
    import_count: int = 0
    by_scope: Mapping[str, int] = field(
        default_factory=lambda: _zero_counts(RuleScope), hash=False
    )
    by_format: Mapping[str, int] = field(
        default_factory=lambda: _zero_counts(RuleFormat), hash=False
    )
    has_global_rules: bool = False
    has_local_rules: bool = False
    has_modular_rules: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "by_scope", MappingProxyType(dict(self.by_scope)))
        object.__setattr__(self, "by_format", MappingProxyType(dict(self.by_format)))

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready dict with camelCase keys."""
        return {
            "totalFiles": self.total_files,
            "totalRules": self.total_rules,
            "byScope": dict(self.by_scope),
            "byFormat": dict(self.by_format),
            "totalLines": self.total_lines,
            "totalSizeBytes": self.total_size_bytes,
            "hasGlobalRules": self.has_global_rules,
            "hasLocalRules": self.has_local_rules,
            "hasModularRules": self.has_modular_rules,
            "importCount": self.import_count,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RulesStats":
        """Rebuild stats from ``to_dict`` output; missing enum keys count as 0."""
        return cls(
            total_files=data["totalFiles"],
            total_rules=data["totalRules"],
            total_lines=data["totalLines"],
            total_size_bytes=data["totalSizeBytes"],
            import_count=data["importCount"],
            by_scope={**_zero_counts(RuleScope), **data.get("byScope", {})},
            by_format={**_zero_counts(RuleFormat), **data.get("byFormat", {})},
            has_global_rules=data["hasGlobalRules"],
            has_local_rules=data["hasLocalRules"],
            has_modular_rules=data["hasModularRules"],
        )


@dataclass(frozen=True)
class RulesSnapshot:
    """Point-in-time result of discovering and parsing every rules document."""

    project_root: str
    snapshot_at: str
    files: tuple[RulesFile, ...]
    all_rules: tuple[ParsedRule, ...]
    stats: RulesStats

    def file_mtimes(self) -> dict[str, float]:
        """Map each source path to the modification time it had when parsed."""
        return {f.path: f.last_modified for f in self.files}

    def rules_for(self, path: str | Path) -> tuple[ParsedRule, ...]:
        """Return the rules of the file at ``path`` (canonical or relative)."""
        wanted = str(path).replace("\\", "/")
        for rules_file in self.files:
            if wanted in (rules_file.path, rules_file.relative_path):
                return rules_file.rules
        return ()

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready dict with camelCase keys, files and rules included."""
        return {
            "projectRoot": self.project_root,
            "snapshotAt": self.snapshot_at,
            "files": [f.to_dict() for f in self.files],
            "allRules": [rule.to_dict() for rule in self.all_rules],
            "stats": self.stats.to_dict(),
        }

    def to_json(self, indent: int | None = 2) -> str:
        """
        Serialize the snapshot as JSON.

        Args:
            indent: Indentation passed to ``json.dumps`` (default: 2).

        Returns:
            JSON text with camelCase keys.
        """
        return json.dumps(self.to_dict(), indent=indent, default=str)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RulesSnapshot":
        """
        Rebuild a snapshot from its ``to_dict`` form.

        ``all_rules`` is recomputed from the files so it cannot drift from them.

        Args:
            data: Mapping with camelCase keys, e.g. parsed JSON.

        Returns:
            The restored snapshot.
        """
        files = tuple(RulesFile.from_dict(f) for f in data.get("files", ()))
        return cls(
            project_root=data["projectRoot"],
            snapshot_at=data["snapshotAt"],
            files=files,
            all_rules=tuple(rule for f in files for rule in f.rules),
            stats=RulesStats.from_dict(data["stats"]),
        )
