from conftest import STRATEGY_JSON, TRACKING_URL, ScriptedService

from auto_lp_builder.errors import GenerationError
from auto_lp_builder.models.prompt import BuildStyling, PromptSections
from auto_lp_builder.strategy import StrategySynthesizer


def test_generated_prompt_parses_sections(multi_step_model, target):
    synthesizer = StrategySynthesizer(ScriptedService(STRATEGY_JSON), timeout=5)

    prompt = synthesizer.synthesize(multi_step_model, target)

    assert prompt.generated
    assert prompt.system_context == "You are building a casual dating quiz."
    assert '"headline"' in prompt.component_instructions
    assert TRACKING_URL in prompt.full_prompt


def test_camel_case_keys_are_accepted(multi_step_model, target):
    reply = '{"systemContext": "ctx", "requirements": "req", "technicalRequirements": "tech"}'
    synthesizer = StrategySynthesizer(ScriptedService(reply), timeout=5)

    prompt = synthesizer.synthesize(multi_step_model, target)

    assert prompt.generated
    assert prompt.technical_requirements == "tech"


def test_unusable_reply_falls_back_to_same_shape(multi_step_model, target):
    for reply in ("not json at all", '{"suggestions": "only"}', GenerationError("quota")):
        synthesizer = StrategySynthesizer(ScriptedService(reply), timeout=5)

        prompt = synthesizer.synthesize(multi_step_model, target)

        assert not prompt.generated
        assert set(PromptSections.model_fields) <= set(type(prompt).model_fields)
        assert prompt.system_context and prompt.requirements
        assert "3 steps" in prompt.requirements
        assert TRACKING_URL in prompt.full_prompt


def test_styling_reaches_the_prompt(single_page_model, target):
    service = ScriptedService("nope")
    styling = BuildStyling(language="es", custom_instructions="Mention free trial")

    prompt = StrategySynthesizer(service, timeout=5).synthesize(single_page_model, target, styling)

    assert "Mention free trial" in service.requests[0].prompt
    assert "Mention free trial" in prompt.full_prompt
    assert "Spanish" in prompt.full_prompt
