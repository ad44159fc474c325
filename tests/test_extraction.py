import pytest

from auto_lp_builder.extraction import Extracted, Malformed, extract_document, extract_json_object

PAGE = "<!DOCTYPE html><html><body>hi</body></html>"


def test_fenced_block_is_preferred():
    result = extract_document(f"Here you go:\n```html\n{PAGE}\n```\nEnjoy")

    assert result == Extracted(html=PAGE, source="fenced")


def test_direct_document_without_fence():
    result = extract_document(f"Sure! {PAGE} Let me know.")

    assert isinstance(result, Extracted)
    assert result.html == PAGE
    assert result.source == "direct"


def test_bare_html_without_doctype():
    result = extract_document("<html lang='en'><body>x</body></html>")

    assert isinstance(result, Extracted)
    assert result.source == "bare"


@pytest.mark.parametrize("raw", ["", "   ", "I cannot help with that.", "<div>partial</div>"])
def test_missing_markers_are_malformed(raw):
    assert isinstance(extract_document(raw), Malformed)


def test_json_object_inside_fence():
    assert extract_json_object('```json\n{"a": 1}\n```') == {"a": 1}


def test_json_object_missing_raises():
    with pytest.raises(ValueError):
        extract_json_object("no json here")
