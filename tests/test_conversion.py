import pytest

from auto_lp_builder.conversion import best_tracking_link, resolve_conversion_target, resolve_tracking_url
from auto_lp_builder.errors import PipelineInputError
from auto_lp_builder.models.structure import DetectedLink, LinkType


def _link(link_type: LinkType, url: str) -> DetectedLink:
    return DetectedLink(id=url, type=link_type, url=url)


def test_override_wins_over_everything():
    url = resolve_tracking_url(
        override="U1",
        analysis_value="https://analysis.test/",
        links=[_link(LinkType.cta, "https://cta.test/")],
    )

    assert url == "U1"


def test_analysis_value_before_links():
    url = resolve_tracking_url(
        override="  ",
        analysis_value="https://analysis.test/",
        links=[_link(LinkType.cta, "https://cta.test/")],
    )

    assert url == "https://analysis.test/"


def test_link_priority_prefers_cta_then_affiliate():
    links = [
        _link(LinkType.redirect, "https://redirect.test/"),
        _link(LinkType.tracking, "/relative/track"),
        _link(LinkType.affiliate, "https://aff.test/?aff=1"),
        _link(LinkType.cta, "#signup"),
    ]

    assert best_tracking_link(links) == "https://aff.test/?aff=1"
    assert best_tracking_link(links[:2]) == "https://redirect.test/"


def test_candidate_on_the_analysed_host_falls_back_to_source():
    url = resolve_tracking_url(
        override=None,
        analysis_value="https://lander.test/next",
        page_url="https://lander.test/",
        source_url="https://offers.test/lander",
    )

    assert url == "https://offers.test/lander"


def test_unresolvable_target_is_an_input_error():
    with pytest.raises(PipelineInputError):
        resolve_conversion_target(override=None, analysis_value="")

    with pytest.raises(PipelineInputError):
        resolve_conversion_target(override="not a url", analysis_value="")
