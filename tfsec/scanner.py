"""Discovery of root module directories, version gating and result filtering."""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass, fields
from typing import Iterable, Optional, TextIO

from packaging.version import InvalidVersion, Version

from tfsec.rule import Result

__all__ = [
    "VERSION",
    "MinimumVersionError",
    "Metrics",
    "Scanner",
    "is_root_module",
    "remove_nested_dirs",
    "skip_downloaded",
    "exclude_paths",
    "include_only_results",
]

# Set at release time; empty for development builds.
VERSION = ""

_TERRAFORM_SUFFIXES = (".tf", ".tf.json")


class MinimumVersionError(RuntimeError):
    """Raised when the configured minimum version is newer than the running one."""


@dataclass
class Metrics:
    """Counts and timings (in seconds) gathered while scanning."""

    blocks: int = 0
    modules: int = 0
    files: int = 0
    disk_io_duration: float = 0.0
    parse_duration: float = 0.0
    passed: int = 0
    failed: int = 0
    ignored: int = 0
    excluded: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    adaptation_duration: float = 0.0
    running_checks_duration: float = 0.0

    def add(self, other: "Metrics") -> "Metrics":
        """Accumulate another set of metrics into this one and return self."""
        for item in fields(self):
            setattr(
                self, item.name, getattr(self, item.name) + getattr(other, item.name)
            )
        return self

    def total(self) -> float:
        """Return the total time spent on disk access, parsing and checking."""
        return (
            self.disk_io_duration
            + self.parse_duration
            + self.adaptation_duration
            + self.running_checks_duration
        )


def _is_within(base: str, target: str) -> bool:
    """Return True when ``target`` is ``base`` or lies beneath it."""
    if os.path.isabs(base) != os.path.isabs(target):
        return False
    try:
        relative = os.path.relpath(target, base)
    except ValueError:
        return False
    return not relative.startswith("..")


def is_root_module(directory: str) -> bool:
    """Return True when the directory directly holds Terraform files."""
    try:
        names = os.listdir(directory)
    except OSError:
        return False
    return any(name.endswith(_TERRAFORM_SUFFIXES) for name in names)


def remove_nested_dirs(dirs: Iterable[str]) -> list[str]:
    """Drop every directory that lies inside another one in the list."""
    candidates = list(dirs)
    return [
        inner
        for inner in candidates
        if not any(
            inner != outer and _is_within(outer, inner) for outer in candidates
        )
    ]


def _result_filename(result: Result) -> Optional[str]:
    if result.block is None:
        return None
    return result.block.filename


def skip_downloaded(results: Iterable[Result]) -> list[Result]:
    """Drop results from downloaded modules and results without a location."""
    marker = f"{os.sep}.terraform{os.sep}"
    return [
        result
        for result in results
        if (filename := _result_filename(result)) is not None
        and marker not in filename
    ]


def exclude_paths(results: Iterable[Result], paths: Iterable[str]) -> list[Result]:
    """Drop results located under any of the given paths, or without a location."""
    excluded = list(paths)
    return [
        result
        for result in results
        if (filename := _result_filename(result)) is not None
        and not any(_is_within(path, filename) for path in excluded)
    ]


def include_only_results(results: Iterable[Result], ids: Iterable[str]) -> list[Result]:
    """Keep only results whose rule id is among ``ids``."""
    wanted = list(ids)
    return [result for result in results for rule_id in wanted if result.rule_id == rule_id]


def _child_dirs(directory: str) -> list[str]:
    """List subdirectories, following symlinks one level to decide."""
    try:
        entries = sorted(os.scandir(directory), key=lambda entry: entry.name)
    except OSError:
        return []
    children = []
    for entry in entries:
        if _entry_is_dir(directory, entry):
            children.append(os.path.join(directory, entry.name))
    return children


def _entry_is_dir(directory: str, entry: os.DirEntry) -> bool:
    if entry.is_symlink():
        try:
            target = os.path.normpath(
                os.path.join(directory, os.readlink(entry.path))
            )
            return stat.S_ISDIR(os.lstat(target).st_mode)
        except OSError:
            pass
    try:
        return entry.is_dir(follow_symlinks=False)
    except OSError:
        return False


class Scanner:
    """Collects paths to scan, locates root modules and filters results."""

    def __init__(
        self,
        *,
        force_all_dirs: bool = False,
        skip_downloaded: bool = False,
        exclude_paths: Optional[Iterable[str]] = None,
        include_only: Optional[Iterable[str]] = None,
        debug_writer: Optional[TextIO] = None,
        version: str = VERSION,
    ) -> None:
        self.force_all_dirs = force_all_dirs
        self.skip_downloaded = skip_downloaded
        self.exclude_paths = list(exclude_paths) if exclude_paths else []
        self.include_only = list(include_only) if include_only else []
        self.debug_writer = debug_writer
        self.version = version
        self._dirs: dict[str, None] = {}

    @property
    def dirs(self) -> list[str]:
        """Directories registered for scanning, in the order they were added."""
        return list(self._dirs)

    def _debug(self, message: str) -> None:
        if self.debug_writer is not None:
            self.debug_writer.write(f"[debug:scan] {message}\n")

    def add_path(self, path: str) -> None:
        """Register a file's directory, or a directory, for scanning."""
        absolute = os.path.normpath(os.path.abspath(path))
        info = os.stat(absolute)
        if stat.S_ISDIR(info.st_mode):
            self._dirs[absolute] = None
        else:
            self._dirs[os.path.dirname(absolute)] = None

    def _remove_nested(self, dirs: list[str]) -> list[str]:
        if self.force_all_dirs:
            return dirs
        return remove_nested_dirs(dirs)

    def _find_root_modules(self, dirs: list[str]) -> list[str]:
        roots: list[str] = []
        others: list[str] = []
        for directory in dirs:
            if is_root_module(directory):
                roots.append(directory)
                if not self.force_all_dirs:
                    continue
            others.extend(_child_dirs(directory))

        if (not roots or self.force_all_dirs) and others:
            roots.extend(self._find_root_modules(others))

        return self._remove_nested(roots)

    def root_modules(self) -> list[str]:
        """Return the directories that should be parsed as root modules."""
        simplified = self._remove_nested(self.dirs)
        return self._find_root_modules(simplified)

    def filter_results(self, results: Iterable[Result]) -> list[Result]:
        """Apply the configured result filters."""
        filtered = list(results)
        if self.skip_downloaded:
            filtered = skip_downloaded(filtered)
        if self.exclude_paths:
            filtered = exclude_paths(filtered, self.exclude_paths)
        if self.include_only:
            filtered = include_only_results(filtered, self.include_only)
        return filtered

    def min_version_satisfied(self, minimum: str) -> bool:
        """Return True unless both versions parse and the running one is older."""
        self._debug("Checking if min tfsec version configured")
        if not minimum:
            self._debug("No minimum tfsec version specified in the config")
            return True
        self._debug(
            f"Comparing required version [{minimum}] against current version [{self.version}]"
        )
        try:
            required = Version(minimum)
        except InvalidVersion as err:
            self._debug(f"There was an error parsing the config min required version: {err}")
            return True
        try:
            current = Version(self.version)
        except InvalidVersion as err:
            self._debug(f"There was an error parsing the current version: {err}")
            return True
        return current >= required

    def check_min_version(self, minimum: str) -> None:
        """Raise MinimumVersionError when the minimum version is not met."""
        if not self.min_version_satisfied(minimum):
            raise MinimumVersionError("minimum tfsec version requirement not satisfied")