from __future__ import annotations

import hypothesis.strategies as st
import pytest
from hypothesis import assume, given

from zpm.cli.registry import ALIAS_INDEX, EOF_TOKEN, Command, UnknownCommandError, resolve


@pytest.mark.parametrize(
    "token, command",
    [
        ("install", Command.INSTALL),
        ("in", Command.INSTALL),
        ("rm", Command.REMOVE),
        ("lr", Command.LIST_REPOS),
        ("catalogs", Command.LIST_REPOS),
        ("ca", Command.LIST_REPOS),
        ("?", Command.HELP),
        ("-h", Command.HELP),
        ("exit", Command.SHELL_QUIT),
        (EOF_TOKEN, Command.SHELL_QUIT),
        ("pchk", Command.PATCH_CHECK),
        ("xu", Command.XML_LIST_UPDATES_PATCHES),
    ],
)
def test_aliases_resolve_to_canonical_commands(token, command):
    assert resolve(token) is command


def test_empty_or_missing_token_is_none():
    assert resolve("") is Command.NONE
    assert resolve(None) is Command.NONE


def test_unknown_token_raises_with_token():
    with pytest.raises(UnknownCommandError) as exc:
        resolve("instal")
    assert exc.value.token == "instal"
    assert "instal" in str(exc.value)


def test_matching_is_case_sensitive():
    with pytest.raises(UnknownCommandError):
        resolve("Install")


def test_every_command_but_none_has_its_canonical_name_as_alias():
    for command in Command:
        if command is Command.NONE:
            continue
        assert command.value in command.aliases


@given(st.sampled_from(sorted(ALIAS_INDEX)))
def test_each_alias_belongs_to_exactly_one_command(alias):
    owners = [command for command in Command if alias in command.aliases]
    assert owners == [resolve(alias)]


@given(st.text(max_size=12))
def test_arbitrary_tokens_resolve_or_raise(token):
    assume(token not in ALIAS_INDEX and token)
    with pytest.raises(UnknownCommandError):
        resolve(token)
