import pytest

from orchestrator.errors import InvalidInput
from services.sanitizer import is_introduction_trigger, sanitize_content, validate_input

MESSAGES = [{"role": "user", "content": "hi"}]


def test_script_and_markup_are_stripped():
    assert validate_input("c1", MESSAGES, "<script>alert(1)</script>hello") == "hello"
    assert validate_input("c1", MESSAGES, "<b>bold</b> move") == "bold move"


def test_too_many_special_characters():
    with pytest.raises(InvalidInput) as info:
        sanitize_content("{}{}{}[][]|")
    assert info.value.reason == "too many special characters"
    assert info.value.status_code == 400


def test_ten_special_characters_are_allowed():
    assert sanitize_content("{}{}{} ok [][]") == "{}{}{} ok [][]"


@pytest.mark.parametrize(
    "cid,messages,content",
    [
        ("", MESSAGES, "hello"),
        (None, MESSAGES, "hello"),
        (42, MESSAGES, "hello"),
        ("c1", [], "hello"),
        ("c1", "not a list", "hello"),
        ("c1", MESSAGES, ""),
        ("c1", MESSAGES, None),
        ("c1", MESSAGES, "x" * 2001),
        ("c1", MESSAGES, "<p></p>"),
    ],
)
def test_invalid_requests(cid, messages, content):
    with pytest.raises(InvalidInput):
        validate_input(cid, messages, content)


def test_max_length_boundary():
    assert validate_input("c1", MESSAGES, "x" * 2000) == "x" * 2000


def test_introduction_trigger():
    assert is_introduction_trigger([{"role": "user", "content": "[START_CONVERSATION]"}])
    assert not is_introduction_trigger(
        [{"role": "assistant", "content": "hi"}, {"role": "user", "content": "[START_CONVERSATION]"}]
    )
    assert not is_introduction_trigger([{"role": "user", "content": "hello"}])
