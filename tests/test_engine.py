"""Tests for aiplint.engine: planning, execution, isolation, and determinism."""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING, Any

import pytest

from aiplint.descriptor import NodeKind, build_model
from aiplint.engine import (
    CheckTask,
    LintConfig,
    PathOverride,
    Suppression,
    evaluate,
    plan,
    run_tasks,
)
from aiplint.findings import CONFIG_ERROR, INTERNAL_ERROR, Severity
from aiplint.resources import extract_resources
from aiplint.rules import CheckContext, Registry, Rule, default_registry

if TYPE_CHECKING:
    from collections.abc import Iterator

    from aiplint.descriptor import DescriptorModel, Field
    from aiplint.findings import Finding


def _noisy_doc(library_doc: dict[str, Any]) -> dict[str, Any]:
    """Library document with several independent violations."""
    messages = {m["name"]: m for m in library_doc["messages"]}
    messages["Book"]["fields"][1]["name"] = "displayName"
    messages["Book"]["fields"][2]["name"] = "author"
    messages["Publisher"]["fields"][0]["type"] = "int64"
    library_doc["package"] = "google.example.library"
    library_doc["services"][0]["methods"][0]["http"]["verb"] = "post"
    return library_doc


def _evaluate(model: DescriptorModel, registry: Registry | None = None, **kwargs: Any) -> list[Finding]:
    return evaluate(model, extract_resources(model), registry or default_registry(), **kwargs)


def _field_rule(rule_id: str, check: Any) -> Rule:
    return Rule(id=rule_id, summary=rule_id, kinds=frozenset({NodeKind.FIELD}), check=check)


def _explode(field: Field, ctx: CheckContext) -> Iterator[Finding]:
    if field.name == "authors":
        msg = "boom"
        raise RuntimeError(msg)
    return iter(())


def _flag_every_field(field: Field, ctx: CheckContext) -> Iterator[Finding]:
    yield ctx.finding(field, f"saw {field.name}")


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


class TestPlan:
    def test_only_matching_kinds_are_planned(self, library_model: DescriptorModel) -> None:
        registry = default_registry().subset(["core::0191"])
        tasks = plan(library_model, extract_resources(library_model), registry, LintConfig())
        assert len(tasks) == 1
        assert tasks[0].node.kind is NodeKind.FILE

    def test_resources_are_planned_after_descriptor_nodes(
        self, library_model: DescriptorModel
    ) -> None:
        registry = default_registry().subset(["core::0123::resource-name-field", "core::0191"])
        tasks = plan(library_model, extract_resources(library_model), registry, LintConfig())
        assert [t.node.kind for t in tasks] == [
            NodeKind.FILE,
            NodeKind.RESOURCE,
            NodeKind.RESOURCE,
        ]

    def test_disabled_rules_are_not_planned(self, library_model: DescriptorModel) -> None:
        config = LintConfig(disabled_rules=("core",))
        tasks = plan(library_model, extract_resources(library_model), default_registry(), config)
        assert tasks == []


# ---------------------------------------------------------------------------
# Enablement
# ---------------------------------------------------------------------------


class TestEnablement:
    def test_global_disable(self, library_doc: dict[str, Any]) -> None:
        model = build_model([_noisy_doc(library_doc)])
        config = LintConfig(disabled_rules=("core::0140",))
        rule_ids = {f.rule_id for f in _evaluate(model, config=config)}
        assert "core::0140::lower-snake" not in rule_ids
        assert "core::0144::repeated-field-names" in rule_ids

    def test_disable_wins_in_scope(self, library_doc: dict[str, Any]) -> None:
        model = build_model([_noisy_doc(library_doc)])
        config = LintConfig(
            enabled_rules=("core::0140::lower-snake",), disabled_rules=("core::0140",)
        )
        rule_ids = {f.rule_id for f in _evaluate(model, config=config)}
        assert "core::0140::lower-snake" not in rule_ids

    def test_path_override_reenables(self, library_doc: dict[str, Any]) -> None:
        model = build_model([_noisy_doc(library_doc)])
        config = LintConfig(
            disabled_rules=("core::0140",),
            path_overrides=(PathOverride("library/*", enabled_rules=("core::0140",)),),
        )
        rule_ids = {f.rule_id for f in _evaluate(model, config=config)}
        assert "core::0140::lower-snake" in rule_ids

    def test_path_override_only_matching_files(self, library_doc: dict[str, Any]) -> None:
        model = build_model([_noisy_doc(library_doc)])
        config = LintConfig(
            path_overrides=(PathOverride("other/*", disabled_rules=("core::0140",)),),
        )
        rule_ids = {f.rule_id for f in _evaluate(model, config=config)}
        assert "core::0140::lower-snake" in rule_ids

    def test_overrides_apply_in_declaration_order(self) -> None:
        rule = _field_rule("x::1::r", _flag_every_field)
        config = LintConfig(
            path_overrides=(
                PathOverride("a/*", disabled_rules=("x",)),
                PathOverride("a/b/*", enabled_rules=("x::1",)),
            )
        )
        assert config.is_rule_enabled(rule, "a/b/c.proto")
        assert not config.is_rule_enabled(rule, "a/c.proto")

    def test_default_disabled_rule(self) -> None:
        rule = Rule(
            id="x::1::r",
            summary="",
            kinds=frozenset({NodeKind.FIELD}),
            check=_flag_every_field,
            default_enabled=False,
        )
        assert not LintConfig().is_rule_enabled(rule, "a.proto")
        assert LintConfig(enabled_rules=("x::1::r",)).is_rule_enabled(rule, "a.proto")

    def test_unknown_selectors_become_config_errors(self, library_model: DescriptorModel) -> None:
        config = LintConfig(
            disabled_rules=("core::9999",),
            path_overrides=(PathOverride("*", enabled_rules=("nope::1::x",)),),
        )
        findings = _evaluate(library_model, config=config)
        assert [f.category for f in findings] == [CONFIG_ERROR, CONFIG_ERROR]
        assert all(f.location.path == "<configuration>" for f in findings)
        assert all(f.severity is Severity.WARNING for f in findings)


# ---------------------------------------------------------------------------
# Failure isolation and timeouts
# ---------------------------------------------------------------------------


class TestIsolation:
    def test_raising_rule_becomes_internal_error(self, library_model: DescriptorModel) -> None:
        registry = Registry(
            [_field_rule("x::1::explode", _explode), _field_rule("x::1::flag", _flag_every_field)]
        )
        findings = _evaluate(library_model, registry)
        errors = [f for f in findings if f.category == INTERNAL_ERROR]
        assert len(errors) == 1
        assert errors[0].rule_id == "x::1::explode"
        assert errors[0].severity is Severity.ERROR
        assert errors[0].location.element == "google.example.library.v1.Book.authors"
        assert "RuntimeError: boom" in errors[0].message
        field_count = sum(1 for n in library_model.walk() if n.kind is NodeKind.FIELD)
        assert sum(1 for f in findings if f.rule_id == "x::1::flag") == field_count

    @pytest.mark.parametrize(("jobs", "timeout"), [(1, None), (4, None), (1, 5.0), (4, 5.0)])
    def test_isolation_with_threads(
        self, library_model: DescriptorModel, jobs: int, timeout: float | None
    ) -> None:
        registry = Registry([_field_rule("x::1::explode", _explode)])
        findings = _evaluate(library_model, registry, jobs=jobs, timeout=timeout)
        assert [f.rule_id for f in findings] == ["x::1::explode"]

    def test_slow_check_times_out(self, library_model: DescriptorModel) -> None:
        def _slow(field: Field, ctx: CheckContext) -> Iterator[Finding]:
            if field.name == "authors":
                time.sleep(1.0)
            yield from ()

        registry = Registry(
            [_field_rule("x::1::slow", _slow), _field_rule("x::1::flag", _flag_every_field)]
        )
        start = time.monotonic()
        findings = _evaluate(library_model, registry, jobs=2, timeout=0.1)
        assert time.monotonic() - start < 1.0
        (timed_out,) = [f for f in findings if f.category == INTERNAL_ERROR]
        assert timed_out.rule_id == "x::1::slow"
        assert "did not finish within 0.1s" in timed_out.message
        field_count = sum(1 for n in library_model.walk() if n.kind is NodeKind.FIELD)
        assert sum(1 for f in findings if f.rule_id == "x::1::flag") == field_count

    def test_timed_out_check_is_left_on_a_daemon_thread(
        self, library_model: DescriptorModel
    ) -> None:
        release = threading.Event()

        def _stuck(field: Field, ctx: CheckContext) -> Iterator[Finding]:
            if field.name == "authors":
                release.wait(5.0)
            yield from ()

        registry = Registry([_field_rule("x::1::stuck", _stuck)])
        try:
            findings = _evaluate(library_model, registry, timeout=0.05)
            stuck = [t for t in threading.enumerate() if t.name.startswith("aiplint-check-")]
            assert stuck
            assert all(t.daemon for t in stuck)
        finally:
            release.set()
        assert [f.category for f in findings] == [INTERNAL_ERROR]
        assert findings[0].location.element == "google.example.library.v1.Book.authors"

    def test_run_tasks_validates_arguments(self) -> None:
        with pytest.raises(ValueError, match="jobs"):
            run_tasks([], jobs=0)
        with pytest.raises(ValueError, match="timeout"):
            run_tasks([], timeout=0)

    def test_prerequisite_gates_check(self, library_model: DescriptorModel) -> None:
        rule = Rule(
            id="x::1::gated",
            summary="",
            kinds=frozenset({NodeKind.FIELD}),
            check=_flag_every_field,
            prerequisite=lambda field, ctx: field.repeated,
        )
        resources = extract_resources(library_model)
        ctx = CheckContext(library_model, resources, rule)
        tasks = [CheckTask(rule, n, ctx) for n in library_model.walk() if n.kind is NodeKind.FIELD]
        findings = run_tasks(tasks)
        assert sorted(f.message for f in findings) == ["saw authors", "saw books"]


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


class TestProperties:
    """Determinism, additivity, suppression exactness, and idempotence."""

    def test_deterministic_across_jobs(self, library_doc: dict[str, Any]) -> None:
        model = build_model([_noisy_doc(library_doc)])
        sequential = _evaluate(model, jobs=1)
        assert len(sequential) >= 5
        for jobs in (2, 8):
            assert _evaluate(model, jobs=jobs) == sequential

    def test_timeout_without_expiry_matches_sequential(self, library_doc: dict[str, Any]) -> None:
        model = build_model([_noisy_doc(library_doc)])
        assert _evaluate(model, jobs=4, timeout=5.0) == _evaluate(model, jobs=1)

    def test_sorted_output(self, library_doc: dict[str, Any]) -> None:
        model = build_model([_noisy_doc(library_doc)])
        findings = _evaluate(model)
        assert findings == sorted(findings, key=lambda f: f.sort_key())

    def test_additive_over_disjoint_subsets(self, library_doc: dict[str, Any]) -> None:
        model = build_model([_noisy_doc(library_doc)])
        full = default_registry()
        left = full.subset(["core::0140", "core::0191"])
        right = full.subset([i for i in full.ids() if i not in left])
        combined = _evaluate(model, left) + _evaluate(model, right)
        assert sorted(combined, key=lambda f: f.sort_key()) == _evaluate(model, full)

    def test_idempotent(self, library_doc: dict[str, Any]) -> None:
        model = build_model([_noisy_doc(library_doc)])
        assert _evaluate(model) == _evaluate(model)

    def test_suppression_removes_exactly_one(self, library_doc: dict[str, Any]) -> None:
        model = build_model([_noisy_doc(library_doc)])
        before = _evaluate(model)
        target = next(f for f in before if f.rule_id == "core::0144::repeated-field-names")
        after = _evaluate(
            model, suppressions=[Suppression(target.rule_id, target.location)]
        )
        assert [f for f in before if f != target] == after

    def test_suppression_for_other_rule_removes_nothing(
        self, library_doc: dict[str, Any]
    ) -> None:
        model = build_model([_noisy_doc(library_doc)])
        before = _evaluate(model)
        target = next(f for f in before if f.rule_id == "core::0144::repeated-field-names")
        after = _evaluate(
            model, suppressions=[Suppression("core::0140::lower-snake", target.location)]
        )
        assert after == before
