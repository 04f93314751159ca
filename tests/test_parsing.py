import pytest

from kita_advisor.ai.parsing import parse_html_fragment, parse_json, strip_code_fences
from kita_advisor.errors import ErrorKind, MalformedResponseError


def test_parse_json_strips_fence_with_language_tag() -> None:
    assert parse_json('```json\n{"a":1}\n```') == {"a": 1}


def test_parse_json_accepts_bare_json() -> None:
    assert parse_json('  [1, 2, {"b": null}]  ') == [1, 2, {"b": None}]


def test_parse_json_accepts_fence_without_language_tag() -> None:
    assert parse_json('```\n{"tips": ["save more"]}\n```\n') == {"tips": ["save more"]}


@pytest.mark.parametrize(
    "text",
    [
        "not json",
        "",
        "   ",
        None,
        '```json\n{"a": 1,}\n```',
        'Here you go: {"a": 1}',
    ],
)
def test_parse_json_rejects_invalid_input(text: str | None) -> None:
    with pytest.raises(MalformedResponseError) as exc_info:
        parse_json(text)
    assert exc_info.value.kind == ErrorKind.MALFORMED_RESPONSE


def test_strip_code_fences_leaves_plain_text() -> None:
    assert strip_code_fences("plain text") == "plain text"


def test_parse_html_fragment_normalizes() -> None:
    text = "```html\r\n<p>Hello</p>\r\n\r\n\r\n\r\n<p>World</p>\r\n```"
    assert parse_html_fragment(text) == "<p>Hello</p>\n\n<p>World</p>"


def test_parse_html_fragment_delegates_sanitizing() -> None:
    def sanitizer(fragment: str) -> str:
        return fragment.replace("<script>alert(1)</script>", "")

    assert parse_html_fragment("<b>Hi</b><script>alert(1)</script>", sanitizer) == "<b>Hi</b>"
    assert parse_html_fragment(None) == ""
