"""Tests for mention handle parsing."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from src.taskcore.services.mentions import extract_handles, handle_from_name, mention_context

pytestmark = pytest.mark.unit

handle = st.from_regex(r"^[a-z0-9_][a-z0-9_.-]{0,20}[a-z0-9_]$", fullmatch=True)


def test_extract_handles_in_order_of_appearance():
    content = "@bob please sync with @alice, then ping @bob again"
    assert extract_handles(content) == ["bob", "alice"]


def test_extract_handles_lower_cases():
    assert extract_handles("Thanks @Jane.Doe!") == ["jane.doe"]


def test_trailing_period_is_not_part_of_handle():
    assert extract_handles("Ask @jane.doe.") == ["jane.doe"]


@pytest.mark.parametrize("content", [None, "", "no mentions here", "email me at jane@"])
def test_no_handles(content):
    assert extract_handles(content) == []


@given(handles=st.lists(handle, min_size=1, max_size=5))
def test_every_mentioned_handle_is_found(handles: list[str]):
    content = " and ".join(f"@{value}" for value in handles)
    found = extract_handles(content)
    assert found == list(dict.fromkeys(handles))


def test_context_is_excerpt_around_mention():
    content = "x" * 300 + " @jane look here " + "y" * 300
    excerpt = mention_context(content, "jane")
    assert "@jane look here" in excerpt
    assert excerpt.startswith("…")
    assert excerpt.endswith("…")


def test_context_of_short_content_is_whole_content():
    assert mention_context("hi @jane", "jane") == "hi @jane"


def test_context_matches_case_insensitively():
    assert "@Jane" in mention_context("ping @Jane now", "jane")


@pytest.mark.parametrize(
    ("display_name", "email", "expected"),
    [
        ("Jane Doe", "jd@example.com", "jane.doe"),
        ("  José   Álvarez ", "j@example.com", "jose.alvarez"),
        (None, "Sam.Smith@example.com", "sam.smith"),
        ("!!!", "kim@example.com", "kim"),
    ],
)
def test_handle_from_name(display_name, email, expected):
    assert handle_from_name(display_name, email) == expected
