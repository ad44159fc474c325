import pytest

from auto_lp_builder.document import Document
from auto_lp_builder.errors import PipelineInputError
from auto_lp_builder.models.edits import (
    ChangeType,
    ComponentToggles,
    CountdownSpec,
    InjectionPlan,
    LinkPolicy,
    LinkRule,
    MutationPlan,
    StickyCtaSpec,
    StyleEdit,
    TextEdit,
)
from auto_lp_builder.models.structure import DetectedLink, LinkType, PageSection, StructuralModel, TrackingSnippet
from auto_lp_builder.mutation.engine import MutationEngine

PAGE = """<!DOCTYPE html>
<html><head><title>t</title>
<style>body { color: #ff0000; font-family: Arial; }</style>
<script id="ga" src="https://www.googletagmanager.com/gtag/js?id=G-1"></script>
</head>
<body>
<section id="hero"><h1 id="headline">Meet singles, meet them now</h1>
<p id="copy">Tom &amp; Jerry approve</p>
<a class="btn" href="https://aff.test/click?utm_source=fb&amp;id=3">Join</a></section>
<section id="faq"><p id="faq-copy">Questions answered</p></section>
<form action="https://aff.test/click?utm_source=fb&amp;id=3"><input name="e"></form>
</body></html>"""


def _apply(plan, model=None, target=None):
    document = Document.parse(PAGE)
    return MutationEngine().apply(document, plan, model=model, target=target)


def test_empty_plan_leaves_document_untouched():
    result = _apply(MutationPlan())

    assert result.document.serialize() == Document.parse(PAGE).serialize()
    assert result.change_log == ()


def test_text_edit_replaces_first_occurrence_only():
    plan = MutationPlan(text_edits=[TextEdit(selector="#headline", original="meet", replacement="date")])

    result = _apply(plan)

    assert result.document.select_one("#headline").get_text() == "Meet singles, date them now"
    assert [entry.type for entry in result.applied] == [ChangeType.text]


def test_trivial_text_edit_is_skipped_without_log():
    plan = MutationPlan(text_edits=[TextEdit(selector="#headline", original="Meet", replacement="Meet")])

    result = _apply(plan)

    assert result.change_log == ()
    assert result.document.serialize() == Document.parse(PAGE).serialize()


def test_text_edit_matches_escaped_markup():
    plan = MutationPlan(text_edits=[TextEdit(selector="#copy", original="Tom & Jerry", replacement="Everyone")])

    result = _apply(plan)

    assert result.document.select_one("#copy").get_text() == "Everyone approve"


def test_unmatched_text_edit_is_logged_as_omitted():
    plan = MutationPlan(
        text_edits=[
            TextEdit(selector="#missing", original="a", replacement="b"),
            TextEdit(selector="#headline", original="absent words", replacement="b"),
        ]
    )

    result = _apply(plan)

    assert len(result.omitted) == 2
    assert result.applied == ()
    assert {entry.reason for entry in result.omitted} == {"target not found", "original text not found"}


def test_section_removal_runs_before_text_edits():
    model = StructuralModel(id="m", sections=[PageSection(id="s-faq", type="faq", selector="#faq")])
    plan = MutationPlan(
        remove_sections=["faq"],
        text_edits=[TextEdit(selector="#faq-copy", original="Questions", replacement="Answers")],
    )

    result = _apply(plan, model=model)

    assert result.document.select_one("#faq") is None
    assert [entry.type for entry in result.applied] == [ChangeType.structure]
    assert [entry.type for entry in result.omitted] == [ChangeType.text]


def test_component_toggles_remove_forms():
    result = _apply(MutationPlan(components=ComponentToggles(include_forms=False)))

    assert result.document.select_one("form") is None
    assert result.applied[0].before == "form"


def test_style_tokens_are_swapped_and_missing_tokens_reported():
    plan = MutationPlan(
        style=StyleEdit(color_map={"#ff0000": "#00ff00", "#123456": "#654321"}, custom_css=".x { margin: 0; }")
    )

    result = _apply(plan)
    html = result.document.serialize()

    assert "#00ff00" in html and "#ff0000" not in html
    assert result.document.select_one('style[data-injected="custom"]') is not None
    assert [entry.before for entry in result.omitted] == ["#123456"]


def test_style_token_swap_is_applied_in_one_pass():
    document = Document.parse("<html><head><style>a{color:#111111}b{color:#222222}</style></head><body></body></html>")
    plan = MutationPlan(style=StyleEdit(color_map={"#111111": "#222222", "#222222": "#111111"}))

    result = MutationEngine().apply(document, plan)

    assert result.document.select_one("style").string == "a{color:#222222}b{color:#111111}"
    assert [(entry.before, entry.after) for entry in result.applied] == [("#111111", "#222222"), ("#222222", "#111111")]


def test_explicit_link_override_beats_rules():
    url = "https://aff.test/click?utm_source=fb&id=3"
    plan = MutationPlan(
        link_overrides={url: "https://override.test/"},
        link_rules=[LinkRule(pattern="aff", replacement_url="https://rule.test/")],
    )

    result = _apply(plan)
    anchor = result.document.select_one("a.btn")

    assert anchor["href"] == "https://override.test/"
    assert anchor["data-original-href"] == url
    assert result.document.select_one("form")["action"] == "https://override.test/"


def test_link_edits_that_match_nothing_are_logged_as_omitted():
    plan = MutationPlan(
        link_overrides={"https://missing.test/": "https://new.test/"},
        link_rules=[LinkRule(pattern="nowhere\\.test", replacement_url="https://rule.test/")],
    )

    result = _apply(plan)

    assert result.applied == ()
    assert [(entry.type, entry.before) for entry in result.omitted] == [
        (ChangeType.link, "https://missing.test/"),
        (ChangeType.link, "nowhere\\.test"),
    ]
    assert "https://new.test/" not in result.document.serialize()


def test_invalid_pattern_degrades_to_substring_match():
    plan = MutationPlan(link_rules=[LinkRule(pattern="?utm_source=fb", replacement_url="https://rule.test/")])

    result = _apply(plan)

    assert result.document.select_one("a.btn")["href"] == "https://rule.test/"
    assert "substring" in result.applied[0].reason


def test_invalid_pattern_rejected_in_strict_mode():
    plan = MutationPlan(
        strict_patterns=True,
        text_edits=[TextEdit(selector="#headline", original="Meet", replacement="Date")],
        link_rules=[LinkRule(pattern="(unclosed", replacement_url="https://rule.test/")],
    )
    document = Document.parse(PAGE)
    before = document.serialize()

    with pytest.raises(PipelineInputError):
        MutationEngine().apply(document, plan)

    assert document.serialize() == before


def test_strip_tracking_policy_drops_marketing_params():
    model = StructuralModel(
        id="m",
        links=[DetectedLink(id="l1", type=LinkType.tracking, url="https://aff.test/click?utm_source=fb&id=3")],
    )

    result = _apply(MutationPlan(link_policy=LinkPolicy.strip_tracking), model=model)

    assert result.document.select_one("a.btn")["href"] == "https://aff.test/click?id=3"


def test_replace_all_points_outbound_links_at_redirect():
    plan = MutationPlan(link_policy=LinkPolicy.replace_all, redirect_url="https://x.test/go")

    result = _apply(plan)

    assert result.document.select_one("a.btn")["href"] == "https://x.test/go"


def test_tracking_snippet_removed_by_selector():
    model = StructuralModel(
        id="m",
        tracking_snippets=[
            TrackingSnippet(id="t1", type="google-analytics", code="https://www.googletagmanager.com/gtag/js", selector="#ga"),
            TrackingSnippet(id="t2", type="hotjar", code="hj('init')"),
        ],
    )

    result = _apply(MutationPlan(remove_all_tracking=True), model=model)

    assert result.document.select_one("#ga") is None
    assert [entry.after for entry in result.applied] == ["[removed]"]
    assert [entry.reason for entry in result.omitted] == ["snippet not found"]


def test_injections_land_after_other_stages():
    plan = MutationPlan(
        redirect_url="https://x.test/go",
        injections=InjectionPlan(countdown=CountdownSpec(duration_minutes=10), sticky_cta=StickyCtaSpec()),
    )

    result = _apply(plan)
    body = result.document.body()

    assert body.find(True)["id"] == "lp-countdown"
    assert result.document.select_one("#lp-sticky-cta a")["href"] == "https://x.test/go"
    assert {entry.type for entry in result.change_log} == {ChangeType.element}
