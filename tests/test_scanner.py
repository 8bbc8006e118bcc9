import io
import os

import pytest

from tfsec.rule import Block, Result
from tfsec.scanner import (
    Metrics,
    MinimumVersionError,
    Scanner,
    exclude_paths,
    include_only_results,
    is_root_module,
    remove_nested_dirs,
    skip_downloaded,
)


def _write(path, text="resource \"a\" \"b\" {}\n"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


def _result(filename, rule_id="aws-service-abc"):
    return Result("problem", Block("resource", ["bad", "x"], {}, filename), rule_id)


def test_add_path_directory_and_file(tmp_path):
    _write(tmp_path / "project" / "main.tf")
    scanner = Scanner()
    scanner.add_path(str(tmp_path / "project" / "main.tf"))
    scanner.add_path(str(tmp_path / "project"))
    assert scanner.dirs == [str(tmp_path / "project")]


def test_add_path_missing_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        Scanner().add_path(str(tmp_path / "missing"))


def test_is_root_module(tmp_path):
    _write(tmp_path / "a" / "main.tf")
    _write(tmp_path / "b" / "main.tf.json", "{}")
    _write(tmp_path / "c" / "readme.md", "x")
    assert is_root_module(str(tmp_path / "a")) is True
    assert is_root_module(str(tmp_path / "b")) is True
    assert is_root_module(str(tmp_path / "c")) is False
    assert is_root_module(str(tmp_path / "nope")) is False


def test_remove_nested_dirs():
    root = os.path.abspath(os.sep)
    outer = os.path.join(root, "work", "project")
    inner = os.path.join(outer, "modules")
    sibling = os.path.join(root, "work", "projectx")
    assert remove_nested_dirs([outer, inner, sibling]) == [outer, sibling]


def test_root_modules_prefers_parent(tmp_path):
    _write(tmp_path / "project" / "main.tf")
    _write(tmp_path / "project" / "modules" / "x" / "main.tf")
    scanner = Scanner()
    scanner.add_path(str(tmp_path / "project"))
    assert scanner.root_modules() == [str(tmp_path / "project")]


def test_root_modules_descends_when_no_tf(tmp_path):
    _write(tmp_path / "a" / "main.tf")
    _write(tmp_path / "b" / "main.tf")
    _write(tmp_path / "b" / "deeper" / "main.tf")
    scanner = Scanner()
    scanner.add_path(str(tmp_path))
    assert sorted(scanner.root_modules()) == [str(tmp_path / "a"), str(tmp_path / "b")]


def test_root_modules_force_all_dirs(tmp_path):
    _write(tmp_path / "project" / "main.tf")
    _write(tmp_path / "project" / "sub" / "main.tf")
    scanner = Scanner(force_all_dirs=True)
    scanner.add_path(str(tmp_path / "project"))
    roots = scanner.root_modules()
    assert str(tmp_path / "project") in roots
    assert str(tmp_path / "project" / "sub") in roots


def test_root_modules_empty_when_nothing_found(tmp_path):
    (tmp_path / "empty" / "deep").mkdir(parents=True)
    scanner = Scanner()
    scanner.add_path(str(tmp_path / "empty"))
    assert scanner.root_modules() == []


def test_min_version_empty_is_satisfied():
    assert Scanner(version="").min_version_satisfied("") is True


def test_min_version_comparisons():
    assert Scanner(version="v1.0.0").min_version_satisfied("v0.28.0") is True
    assert Scanner(version="v1.0.0").min_version_satisfied("v1.0.0") is True
    assert Scanner(version="v0.1.0").min_version_satisfied("v1.0.0") is False


def test_min_version_unparsable_is_satisfied():
    assert Scanner(version="").min_version_satisfied("1.0.0") is True
    assert Scanner(version="1.0.0").min_version_satisfied("not-a-version") is True


def test_check_min_version_raises():
    with pytest.raises(MinimumVersionError):
        Scanner(version="0.1.0").check_min_version("2.0.0")


def test_debug_writer_receives_prefix():
    writer = io.StringIO()
    Scanner(debug_writer=writer).min_version_satisfied("")
    assert writer.getvalue().startswith("[debug:scan] ")


def test_metrics_add_and_total():
    first = Metrics(blocks=2, disk_io_duration=1.0, parse_duration=2.0)
    second = Metrics(blocks=3, adaptation_duration=0.5, running_checks_duration=0.5, high=1)
    first.add(second)
    assert first.blocks == 5
    assert first.high == 1
    assert first.total() == first.disk_io_duration + first.parse_duration + 1.0


def test_skip_downloaded():
    downloaded = _result(os.path.join(os.sep, "p", ".terraform", "modules", "m.tf"))
    local = _result(os.path.join(os.sep, "p", "main.tf"))
    unlocated = Result("x", None, "aws-service-abc")
    assert skip_downloaded([downloaded, local, unlocated]) == [local]


def test_exclude_paths():
    root = os.path.abspath(os.sep)
    inside = _result(os.path.join(root, "p", "vendor", "a.tf"))
    outside = _result(os.path.join(root, "p", "main.tf"))
    assert exclude_paths([inside, outside], [os.path.join(root, "p", "vendor")]) == [outside]


def test_include_only_results():
    keep = _result("main.tf", "aws-service-abc")
    drop = _result("main.tf", "aws-service-def")
    assert include_only_results([keep, drop], ["aws-service-abc"]) == [keep]


def test_filter_results_combines_filters():
    root = os.path.abspath(os.sep)
    good = _result(os.path.join(root, "p", "main.tf"), "aws-service-abc")
    other_rule = _result(os.path.join(root, "p", "main.tf"), "aws-service-def")
    downloaded = _result(os.path.join(root, "p", ".terraform", "m", "main.tf"))
    scanner = Scanner(skip_downloaded=True, include_only=["aws-service-abc"])
    assert scanner.filter_results([good, other_rule, downloaded]) == [good]