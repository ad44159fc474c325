import re

from conftest import TRACKING_URL

from auto_lp_builder.dictionaries import DEFAULT_QUIZ_PROMPTS
from auto_lp_builder.fallback import FallbackSynthesizer, collect_prompts, fit_prompts, is_quiz_prompt
from auto_lp_builder.models.structure import (
    ComponentRole,
    ComponentType,
    ConversionTarget,
    FlowSpec,
    FlowType,
    StructuralComponent,
    StructuralModel,
)
from auto_lp_builder.validation import Validator


def test_multi_step_page_without_prompts_uses_defaults(target):
    model = StructuralModel(id="bare", flow=FlowSpec(type=FlowType.multi_step, total_steps=3))

    html = FallbackSynthesizer().synthesize(model, target)

    steps = re.findall(r'<div class="step" id="step(\d)" style="display:(\w+);">', html)
    assert steps == [("1", "block"), ("2", "none"), ("3", "none")]
    for prompt in DEFAULT_QUIZ_PROMPTS:
        assert f"<h1>{prompt}</h1>" in html
    script = html[html.index("<script>"):]
    assert f'const REDIRECT_URL = "{TRACKING_URL}";' in script
    assert "const TOTAL_STEPS = 3;" in script
    assert Validator().validate(html, model.flow, target).passed


def test_step_count_follows_the_flow(multi_step_model, target):
    model = multi_step_model.model_copy(update={"flow": FlowSpec(type=FlowType.multi_step, total_steps=5)})

    html = FallbackSynthesizer().synthesize(model, target)

    assert len(re.findall(r'class="step" id="step\d"', html)) == 5
    assert "<h1>Would you like to meet singles nearby?</h1>" in html
    assert Validator().validate(html, model.flow, target).passed


def test_single_page_links_to_target(single_page_model, target):
    html = FallbackSynthesizer().synthesize(single_page_model, target)

    assert f'href="{TRACKING_URL}"' in html
    assert Validator().validate(html, single_page_model.flow, target).passed


def test_single_page_with_query_string_url_passes_validation(single_page_model):
    target = ConversionTarget(tracking_url="https://x.test/go?aff=1&sub=2")

    html = FallbackSynthesizer().synthesize(single_page_model, target)

    assert 'href="https://x.test/go?aff=1&amp;sub=2"' in html
    assert Validator().validate(html, single_page_model.flow, target).passed


def test_multi_step_page_keeps_non_ascii_url_verbatim(multi_step_model):
    target = ConversionTarget(tracking_url="https://x.test/caf\u00e9")

    html = FallbackSynthesizer().synthesize(multi_step_model, target)

    assert 'const REDIRECT_URL = "https://x.test/caf\u00e9";' in html
    assert Validator().validate(html, multi_step_model.flow, target).passed


def test_prompt_text_is_escaped(target):
    html = FallbackSynthesizer().multi_step(["Is <b>this</b> & that okay?", "Second question here?"], target=target)

    assert "Is &lt;b&gt;this&lt;/b&gt; &amp; that okay?" in html


def test_collect_prompts_skips_instructions_and_placeholders():
    def quiz(content):
        return StructuralComponent(
            id=content, type=ComponentType.quiz_question, content=content, role=ComponentRole.engagement
        )

    model = StructuralModel(
        id="m",
        components=[
            quiz("Click continue"),
            quiz("Question 2"),
            quiz("Are you single right now?"),
            quiz("A long descriptive statement about what happens next on this page"),
            quiz("Are you single right now?"),
            StructuralComponent(id="h", type=ComponentType.headline, content="Do you want the headline?"),
        ],
    )

    assert collect_prompts(model) == [
        "Are you single right now?",
        "A long descriptive statement about what happens next on this page",
    ]
    assert not is_quiz_prompt("(choose one)")


def test_fit_prompts_truncates_and_pads():
    assert fit_prompts(["a?", "b?", "c?"], 2) == ["a?", "b?"]
    assert fit_prompts(["Are you over 18?"], 3) == [
        "Are you over 18?",
        "Are you looking to meet someone?",
        "Are you ready to start?",
    ]
    assert len(fit_prompts([], 5)) == 5
