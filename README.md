# tfsec

Building blocks for static security analysis of Terraform configurations:
severity levels, rules that decide which blocks they apply to, and a
scanner that finds root module directories on disk, checks a minimum
version and filters results.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Severities (`tfsec.severity`)

```python
from tfsec.severity import Severity, string_to_severity, valid_severities

string_to_severity("warning")     # Severity.MEDIUM
string_to_severity("bogus")       # Severity.NONE
Severity.HIGH.ordinal()           # 3
Severity.NONE.is_valid()          # False
valid_severities()                # [CRITICAL, HIGH, MEDIUM, LOW]
```

Names are matched case-insensitively. The legacy names `ERROR`, `WARNING`
and `INFO` map to `HIGH`, `MEDIUM` and `LOW`; anything else gives
`Severity.NONE`, whose ordinal is 0.

## Rules (`tfsec.rule`)

A `Block` holds a block's type, labels, attributes and the file it came
from. A `Rule` has a provider, service and short code (its `id()` is
`provider-service-shortcode`), a severity, and the block types, labels and
module sources it applies to. Labels and sources may contain `*` wildcards,
and a lone `*` matches anything.

```python
from tfsec.rule import Block, Result, Rule, wildcard_match

wildcard_match("aws_*", "aws_instance")                      # True
wildcard_match("aws_security_group*", "aws_security_group")  # True
wildcard_match("x_aws_*", "aws_instance")                    # False

rule = Rule(
    provider="aws",
    service="s3",
    short_code="no-public-acl",
    required_types=["resource"],
    required_labels=["aws_s3_bucket"],
    check_terraform=lambda block, module: (
        [Result("bucket is public", block)]
        if block.get_attribute("acl") == "public-read"
        else []
    ),
)

bucket = Block("resource", ["aws_s3_bucket", "b"], {"acl": "public-read"}, "main.tf")
rule.is_required_for_block(bucket)        # True
rule.check_against_block(bucket, None)    # one Result with rule_id "aws-s3-no-public-acl"
```

Required sources are only consulted for `module` blocks. A `source` that
starts with `.` is resolved against the directory of the block's file and
then made relative to the current working directory
(`clean_path_relative_to_working_dir`) before it is matched. A rule without
a check function returns no results.

## Scanning (`tfsec.scanner`)

```python
from tfsec.scanner import Scanner

scanner = Scanner()
scanner.add_path("./infrastructure")
for directory in scanner.root_modules():
    print(directory)
```

`add_path` registers a directory, or the directory of a file, and raises
`OSError` when the path does not exist. A root module is a directory that
directly holds `.tf` or `.tf.json` files (`is_root_module`). Directories
nested inside another registered directory are dropped
(`remove_nested_dirs`), and the search descends into subdirectories only
until root modules are found. With `Scanner(force_all_dirs=True)` nesting
is kept and every level is searched.

`Scanner.filter_results(results)` applies the filters chosen when the
scanner was made:

- `skip_downloaded=True` drops results from files under a `.terraform`
  directory (`skip_downloaded`);
- `exclude_paths=[...]` drops results from files under any of the paths
  (`exclude_paths`);
- `include_only=[...]` keeps only results whose rule id is listed
  (`include_only_results`).

The first two also drop results that have no block.

`Scanner.min_version_satisfied(minimum)` compares the scanner's `version`
(by default `tfsec.scanner.VERSION`, empty in development builds) with a
required minimum; if either does not parse, the check passes.
`Scanner.check_min_version(minimum)` raises `MinimumVersionError` when it
fails. Passing `debug_writer=` a text stream makes the scanner write its
debug messages there.

`Metrics` holds counts and timings; `add` accumulates another `Metrics` and
`total()` sums the time spent on disk access, parsing and checks.

## What this package does not do

It does not read or parse Terraform files, evaluate expressions or modules,
or ship any built-in rules: callers build `Block` objects themselves and run
their rules on them. There is no command-line program and no report output.