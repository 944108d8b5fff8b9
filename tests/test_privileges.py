from __future__ import annotations

import pytest

from zpm.privileges import RootPrivilegesRequired, format_command_for_hint, require_root


def test_require_root_passes_for_root():
    require_root("modifying system repositories", probe=lambda: True)


def test_require_root_names_the_intent():
    with pytest.raises(RootPrivilegesRequired) as exc:
        require_root("refreshing system repositories", probe=lambda: False)

    assert "for refreshing system repositories" in str(exc.value)
    assert exc.value.intent == "refreshing system repositories"
    assert isinstance(exc.value, PermissionError)


def test_hint_quotes_arguments():
    assert format_command_for_hint(["zpm", "in", "my package"]) == "zpm in 'my package'"
