"""Rules that are matched against Terraform blocks and run on them."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from tfsec.severity import Severity

__all__ = [
    "Block",
    "Result",
    "Rule",
    "wildcard_match",
    "clean_path_relative_to_working_dir",
]

MODULE_BLOCK_TYPE = "module"


@dataclass
class Block:
    """A parsed Terraform block: its type, labels, attributes and origin file."""

    type: str
    labels: list[str] = field(default_factory=list)
    attributes: dict[str, Any] = field(default_factory=dict)
    filename: str = ""

    def type_label(self) -> str:
        """Return the first label, or an empty string when there is none."""
        return self.labels[0] if self.labels else ""

    def full_name(self) -> str:
        """Return the block's dotted name, e.g. ``module.foo`` or ``aws_s3_bucket.b``."""
        parts = list(self.labels)
        if self.type != "resource":
            parts.insert(0, self.type)
        return ".".join(parts)

    def get_attribute(self, name: str) -> Any:
        """Return the attribute's value, or None when it is absent."""
        return self.attributes.get(name)


@dataclass
class Result:
    """A finding produced by a rule for a block."""

    description: str
    block: Optional[Block] = None
    rule_id: str = ""


CheckFunc = Callable[[Block, Any], list[Result]]


@dataclass(eq=False)
class Rule:
    """A targeted test applied to blocks of given types, labels and module sources."""

    provider: str
    service: str
    short_code: str
    severity: Severity = Severity.NONE
    summary: str = ""
    required_types: list[str] = field(default_factory=list)
    required_labels: list[str] = field(default_factory=list)
    required_sources: list[str] = field(default_factory=list)
    check_terraform: Optional[CheckFunc] = None

    def id(self) -> str:
        """Return the long identifier ``provider-service-shortcode``."""
        return f"{self.provider}-{self.service}-{self.short_code}"

    def check_against_block(self, block: Block, module: Any = None) -> list[Result]:
        """Run the check on a block it applies to and tag results with this rule."""
        if self.check_terraform is None or not self.is_required_for_block(block):
            return []
        results = list(self.check_terraform(block, module) or [])
        rule_id = self.id()
        for result in results:
            result.rule_id = rule_id
        return results

    def is_required_for_block(self, block: Block) -> bool:
        """Return True when this rule should be applied to the block."""
        if self.required_types and block.type not in self.required_types:
            return False
        if self.required_labels and not self._labels_match(block):
            return False
        if (
            self.required_sources
            and block.type == MODULE_BLOCK_TYPE
            and not self._sources_match(block)
        ):
            return False
        return True

    def _labels_match(self, block: Block) -> bool:
        return any(
            label == "*" or (block.labels and wildcard_match(label, block.type_label()))
            for label in self.required_labels
        )

    def _sources_match(self, block: Block) -> bool:
        value = block.get_attribute("source")
        if value is None:
            return False
        if isinstance(value, (list, tuple)):
            if not value:
                return False
            value = value[0]
        source_path = str(value)

        if source_path.startswith("."):
            try:
                source_path = clean_path_relative_to_working_dir(
                    os.path.dirname(block.filename), source_path
                )
            except (OSError, ValueError) as err:
                source_path = ""
                print(
                    f"WARNING: did not clean path for module "
                    f"{block.full_name()}:{block.filename} due to error(s): {err}",
                    file=sys.stderr,
                )

        return any(
            required == "*" or wildcard_match(required, source_path)
            for required in self.required_sources
        )


def clean_path_relative_to_working_dir(directory: str, path: str) -> str:
    """Resolve ``path`` against ``directory`` and express it relative to the cwd."""
    absolute = os.path.normpath(os.path.join(directory, path))
    return os.path.relpath(absolute, os.getcwd())


def wildcard_match(pattern: str, subject: str) -> bool:
    """Match ``subject`` against a pattern in which ``*`` stands for any text."""
    if not pattern:
        return False
    parts = pattern.split("*")
    last_index = 0
    for position, part in enumerate(parts):
        if not part:
            continue
        if position == 0 and not subject.startswith(part):
            return False
        if position == len(parts) - 1 and not subject.endswith(part):
            return False
        new_index = subject.find(part)
        if new_index < last_index:
            return False
        last_index = new_index
    return True