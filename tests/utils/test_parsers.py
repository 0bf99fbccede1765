import pytest

from modgate.util.parsers import closest_match, edit_distance, string_similarity


@pytest.mark.parametrize(
    "a, b, expected",
    [
        ("", "", 0),
        ("ping", "ping", 0),
        ("Ping", "pING", 0),
        ("kitten", "sitting", 3),
        ("", "abc", 3),
    ],
)
def test_edit_distance(a, b, expected):
    assert edit_distance(a, b) == expected
    assert edit_distance(b, a) == expected


def test_string_similarity():
    assert string_similarity("", "") == 1.0
    assert string_similarity("ping", "ping") == 1.0
    assert string_similarity("ping", "pong") == pytest.approx(0.75)
    assert string_similarity("abc", "xyz") == 0.0


def test_closest_match():
    assert closest_match("hlep", ["help", "ping"]) == "help"
    assert closest_match("anything", []) is None
    assert closest_match("zzzz", ["help"], threshold=0.5) is None


def test_closest_match_ties_keep_first():
    assert closest_match("pa", ["pb", "pc"]) == "pb"
