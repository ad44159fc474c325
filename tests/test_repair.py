from conftest import TRACKING_URL, VALID_MULTI_STEP, ScriptedService

from auto_lp_builder.models.artifact import ArtifactOrigin, BuildArtifact
from auto_lp_builder.models.structure import ConversionTarget, FlowSpec, FlowType
from auto_lp_builder.repair import USER_REPORTED, RepairLoop, basic_repairs
from auto_lp_builder.validation import Validator

MULTI = FlowSpec(type=FlowType.multi_step, total_steps=3)

BROKEN_LAYOUT = VALID_MULTI_STEP.replace("body { min-height: 100vh; }", "body { overflow: hidden; max-height: 100vh; }")
MISSING_STEP = VALID_MULTI_STEP.replace('id="step3"', 'id="final"')


def _artifact(html: str) -> BuildArtifact:
    return BuildArtifact(id="build_root", html=html, success=False)


def test_basic_repairs_fix_layout_and_navigation(target):
    html = basic_repairs(BROKEN_LAYOUT, MULTI, target)

    assert "overflow" not in html
    assert "max-height" not in html
    assert Validator().validate(html, MULTI, target).passed

    without_script = "<!DOCTYPE html><html><body>" + "".join(
        f'<div id="step{i}"></div>' for i in range(1, 4)
    ) + "</body></html>"
    repaired = basic_repairs(without_script, MULTI, target)

    assert "function nextStep()" in repaired
    assert TRACKING_URL in repaired
    assert Validator().validate(repaired, MULTI, target).passed


def test_basic_repairs_write_non_ascii_url_verbatim():
    target = ConversionTarget(tracking_url="https://x.test/caf\u00e9")
    without_script = "<!DOCTYPE html><html><body>" + "".join(
        f'<div id="step{i}"></div>' for i in range(1, 4)
    ) + "</body></html>"
    stale = VALID_MULTI_STEP.replace(TRACKING_URL, "https://old.test/")

    assert 'const REDIRECT_URL = "https://x.test/caf\u00e9";' in basic_repairs(without_script, MULTI, target)
    assert 'REDIRECT_URL = "https://x.test/caf\u00e9"' in basic_repairs(stale, MULTI, target)


def test_generated_repair_that_validates_stops_the_loop(target):
    service = ScriptedService(VALID_MULTI_STEP)
    loop = RepairLoop(service, timeout=5)
    defects = Validator().validate(BROKEN_LAYOUT, MULTI, target).defects

    repaired = loop.repair(_artifact(BROKEN_LAYOUT), defects, MULTI, target)

    assert repaired.success
    assert repaired.origin == ArtifactOrigin.repaired
    assert repaired.parent_id == "build_root"
    assert all(resolution.resolved for resolution in repaired.resolutions)
    assert len(service.requests) == 1
    assert "overflow:hidden" in service.requests[0].prompt


def test_attempts_are_bounded_and_chained(target):
    service = ScriptedService("no html", "still no html", VALID_MULTI_STEP)
    loop = RepairLoop(service, timeout=5, max_attempts=5)
    defects = Validator().validate(MISSING_STEP, MULTI, target).defects

    repaired = loop.repair(_artifact(MISSING_STEP), defects, MULTI, target)

    assert not repaired.success
    assert len(service.requests) == 2
    assert repaired.parent_id.startswith("repair1_")
    assert repaired.id.startswith("repair2_")
    assert [resolution.resolved for resolution in repaired.resolutions] == [False]


def test_nothing_outstanding_returns_artifact(target):
    service = ScriptedService()
    artifact = _artifact(VALID_MULTI_STEP)

    assert RepairLoop(service).repair(artifact, (), MULTI, target) is artifact
    assert service.requests == []


def test_zero_attempts_reports_failure(target):
    defects = Validator().validate(MISSING_STEP, MULTI, target).defects

    repaired = RepairLoop(ScriptedService(), max_attempts=0).repair(_artifact(MISSING_STEP), defects, MULTI, target)

    assert not repaired.success
    assert repaired.id == "build_root"
    assert repaired.defects == defects


def test_user_issue_resolution_follows_generation(target):
    issue = "Make the headline bigger"

    generated = RepairLoop(ScriptedService(VALID_MULTI_STEP), timeout=5).repair(
        _artifact(VALID_MULTI_STEP), (), MULTI, target, user_issues=[issue]
    )
    degraded = RepairLoop(ScriptedService("garbage"), timeout=5).repair(
        _artifact(VALID_MULTI_STEP), (), MULTI, target, user_issues=[issue]
    )

    assert generated.resolutions[0].defect.kind == USER_REPORTED
    assert generated.resolutions[0].resolved
    assert not degraded.resolutions[0].resolved
    assert degraded.success
