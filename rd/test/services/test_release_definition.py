from __future__ import annotations

from pathlib import Path

from rd.core.result import Err, Ok
from rd.output.console import MockConsole
from rd.services.release.definition import (
    LineAction,
    apply_definition_edits,
    classify_lines,
    mutate_definition,
)
from rd.services.release.model import PackageOverride

DEFINITION = """release: RC-1
skipIfAlreadyInstalled: true
artifacts:
  pkgA: 1.0.0-1
  pkgB: 2.1.0-4
  pkgAB: 3.0.0-2

promotePackagesBeforeDeploymentToOrg: uat
"""


def test_exclude_drops_only_matching_line() -> None:
    out = mutate_definition(DEFINITION, ["pkgA"], [])
    assert "  pkgA: 1.0.0-1" not in out
    assert "  pkgAB: 3.0.0-2\n" in out
    assert "  pkgB: 2.1.0-4\n" in out


def test_override_preserves_indentation() -> None:
    out = mutate_definition(DEFINITION, [], [PackageOverride("pkgB", "2.2.0-1")])
    assert "  pkgB: 2.2.0-1\n" in out
    assert "2.1.0-4" not in out


def test_blank_lines_are_removed() -> None:
    out = mutate_definition(DEFINITION, [], [])
    assert "\n\n" not in out
    assert out.endswith("promotePackagesBeforeDeploymentToOrg: uat\n")


def test_exclusion_wins_over_override() -> None:
    out = mutate_definition(DEFINITION, ["pkgA"], [PackageOverride("pkgA", "9.9.9-9")])
    assert "pkgA:" not in out


def test_last_override_wins() -> None:
    out = mutate_definition(
        DEFINITION,
        [],
        [PackageOverride("pkgA", "1.1.0-1"), PackageOverride("pkgA", "1.2.0-1")],
    )
    assert "  pkgA: 1.2.0-1\n" in out
    assert "1.1.0-1" not in out


def test_mutation_is_idempotent() -> None:
    exclude = ["pkgAB"]
    overrides = [PackageOverride("pkgB", "2.2.0-1")]
    once = mutate_definition(DEFINITION, exclude, overrides)
    assert mutate_definition(once, exclude, overrides) == once


def test_same_package_in_two_sections_is_edited_twice() -> None:
    text = "artifacts:\n  pkgA: 1.0.0-1\nbaseline:\n  pkgA: 0.9.0-1\n"
    out = mutate_definition(text, [], [PackageOverride("pkgA", "2.0.0-1")])
    assert out.count("pkgA: 2.0.0-1") == 2


def test_crlf_line_endings_are_kept() -> None:
    text = "artifacts:\r\n  pkgA: 1.0.0-1\r\n  pkgB: 2.0.0-1\r\n"
    out = mutate_definition(text, ["pkgB"], [PackageOverride("pkgA", "1.1.0-1")])
    assert out == "artifacts:\r\n  pkgA: 1.1.0-1\r\n"


def test_names_are_matched_literally() -> None:
    text = "artifacts:\n  pkg.core: 1.0.0-1\n  pkgXcore: 1.0.0-1\n"
    out = mutate_definition(text, ["pkg.core"], [])
    assert out == "artifacts:\n  pkgXcore: 1.0.0-1\n"


def test_classify_lines_reports_packages() -> None:
    decisions = classify_lines(DEFINITION, ["pkgA"], [PackageOverride("pkgB", "2.2.0-1")])
    actions = {d.package: d.action for d in decisions if d.package}
    assert actions == {"pkgA": LineAction.DROP, "pkgB": LineAction.REPLACE}


def test_apply_definition_edits_rewrites_file(tmp_path: Path) -> None:
    path = tmp_path / "release-def.yml"
    path.write_text(DEFINITION, encoding="utf-8")
    console = MockConsole()

    result = apply_definition_edits(
        path=path,
        exclude=["pkgA", "ghost"],
        overrides=[PackageOverride("pkgB", "2.2.0-1")],
        console=console,
    )

    assert isinstance(result, Ok)
    assert path.read_text(encoding="utf-8") == result.value
    assert "pkgA:" not in result.value
    assert console.find("Removing: pkgA: 1.0.0-1")
    assert console.find("Setting: pkgB: 2.1.0-4 -> pkgB: 2.2.0-1")
    assert console.find("package not found in release definition: ghost")


def test_apply_definition_edits_missing_file(tmp_path: Path) -> None:
    result = apply_definition_edits(
        path=tmp_path / "missing.yml",
        exclude=["pkgA"],
        overrides=[],
        console=MockConsole(),
    )
    assert isinstance(result, Err)
    assert result.error.kind == "definition"
