import pytest
from pydantic import ValidationError

from conftest import VALID_MULTI_STEP

from auto_lp_builder.models.artifact import Severity
from auto_lp_builder.models.structure import ConversionTarget, FlowSpec, FlowType
from auto_lp_builder.validation import Validator

MULTI = FlowSpec(type=FlowType.multi_step, total_steps=3)


def _kinds(report):
    return [defect.kind for defect in report.defects]


def test_valid_multi_step_page_passes(target):
    report = Validator().validate(VALID_MULTI_STEP, MULTI, target)

    assert report.passed
    assert report.score == 100
    assert report.defects == ()


def test_missing_and_extra_steps_are_reported(target):
    html = VALID_MULTI_STEP.replace('id="step3"', 'id="step4"')

    report = Validator().validate(html, MULTI, target)

    assert not report.passed
    assert "missing-step" in _kinds(report)
    assert "unexpected-step" in _kinds(report)
    missing = next(defect for defect in report.defects if defect.kind == "missing-step")
    assert missing.location_hint == "#step3"
    assert report.score == 100 - 25 - 10


def test_layout_traps_are_critical(target):
    html = VALID_MULTI_STEP.replace("body { min-height: 100vh; }", "body { overflow: hidden; max-height: 100vh; }")

    report = Validator().validate(html, MULTI, target)

    assert {"overflow-hidden-body", "max-height-vh"} <= set(_kinds(report))
    assert report.count(Severity.critical) == 2


def test_undefined_click_handler(target):
    html = VALID_MULTI_STEP.replace('onclick="nextStep()">Start', 'onclick="finish()">Start')

    report = Validator().validate(html, MULTI, target)

    assert _kinds(report) == ["undefined-handler"]
    assert report.defects[0].location_hint == "finish"


def test_missing_redirect_and_step_advance(target):
    html = VALID_MULTI_STEP.replace("https://x.test/go", "https://elsewhere.test/").replace(
        "function nextStep()", "function advance()"
    )

    report = Validator().validate(html, MULTI, target)

    assert {"missing-redirect", "missing-step-advance", "undefined-handler"} <= set(_kinds(report))


def test_single_page_needs_a_cta(target):
    page = "<!DOCTYPE html><html><body><h1>Hello</h1></body></html>"
    linked = page.replace("<h1>Hello</h1>", '<a href="https://x.test/go">Join</a>')

    assert _kinds(Validator().validate(page, FlowSpec(), target)) == ["missing-redirect", "missing-cta"]
    assert Validator().validate(linked, FlowSpec(), target).passed


def test_html_escaped_url_counts_as_present():
    target = ConversionTarget(tracking_url="https://x.test/go?aff=1&sub=2")
    page = '<!DOCTYPE html><html><body><a href="https://x.test/go?aff=1&amp;sub=2">Join</a></body></html>'
    elsewhere = page.replace("aff=1", "aff=9")

    assert Validator().validate(page, FlowSpec(), target).passed
    assert _kinds(Validator().validate(elsewhere, FlowSpec(), target)) == ["missing-redirect", "missing-cta"]


def test_minor_defects_do_not_block(target):
    html = VALID_MULTI_STEP.replace("<!DOCTYPE html>", "")

    report = Validator().validate(html, MULTI, target)

    assert report.passed
    assert _kinds(report) == ["missing-doctype"]
    assert report.score == 97


def test_flow_transitions_end_in_redirect(target):
    transitions = MULTI.transitions(target)

    assert [transition.action for transition in transitions] == ["next-step", "next-step", "redirect"]
    assert transitions[-1].url == target.tracking_url
    assert [transition.action for transition in FlowSpec().transitions(target)] == ["redirect"]


def test_multi_step_flow_needs_two_steps():
    with pytest.raises(ValidationError):
        FlowSpec(type=FlowType.multi_step, total_steps=1)
