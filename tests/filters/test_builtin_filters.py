import pytest

from modgate.filters.builtin_filters import builtin_filters, contains_invite, contains_link, excessive_caps, mass_mention


@pytest.mark.parametrize(
    "content, expected",
    [
        ("join discord.gg/abc123", True),
        ("https://discord.com/invite/xyz", True),
        ("discordapp.com/invite/xyz", True),
        ("discord is great", False),
    ],
)
def test_contains_invite(content, expected):
    assert contains_invite(content) is expected


def test_contains_link():
    assert contains_link("see http://example.com")
    assert contains_link("HTTPS://EXAMPLE.COM")
    assert not contains_link("example dot com")


def test_excessive_caps():
    assert excessive_caps("WHY IS NOBODY ANSWERING")
    assert not excessive_caps("SHORT")
    assert not excessive_caps("Mostly lower case with A Few Caps")


def test_mass_mention():
    assert mass_mention("<@1> <@!2> <@&3> <@4> <@5>")
    assert not mass_mention("<@1> <@2> <@3> <@4>")


def test_builtin_definitions_are_unique():
    definitions = builtin_filters()
    names = [d.name for d in definitions]
    assert len(names) == len(set(names))
    assert all(d.matcher is not None and d.short_help for d in definitions)
