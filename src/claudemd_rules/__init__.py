"""Extract atomic rules from CLAUDE.md documents into immutable snapshots."""

import logging

from claudemd_rules.ctx import RulesLoaderContext
from claudemd_rules.discovery import IGNORED_DIRS, RulesDiscoverer, discover_rules_files
from claudemd_rules.imports import extract_file_imports
from claudemd_rules.models import (
    DiscoveredFile,
    ImportReference,
    ParsedRule,
    RuleEmphasis,
    RuleFormat,
    RulesFile,
    RulesSnapshot,
    RulesStats,
    RuleScope,
)
from claudemd_rules.parser import DocumentParser, generate_rule_id, parse_markdown
from claudemd_rules.snapshot import build_rules_snapshot, parse_rules_file, snapshot_is_fresh


logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "IGNORED_DIRS",
    "DiscoveredFile",
    "DocumentParser",
    "ImportReference",
    "ParsedRule",
    "RuleEmphasis",
    "RuleFormat",
    "RuleScope",
    "RulesDiscoverer",
    "RulesFile",
    "RulesLoaderContext",
    "RulesSnapshot",
    "RulesStats",
    "build_rules_snapshot",
    "discover_rules_files",
    "extract_file_imports",
    "generate_rule_id",
    "parse_markdown",
    "parse_rules_file",
    "snapshot_is_fresh",
]
