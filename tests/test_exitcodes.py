from __future__ import annotations

import hypothesis.strategies as st
import pytest
from hypothesis import given

from zpm.exitcodes import (
    ExitCode,
    exit_code_for_commit,
    exit_code_for_exception,
    exit_code_for_patches,
    merge_exit_code,
)
from zpm.locking import TransactionLockError
from zpm.privileges import RootPrivilegesRequired
from zpm.repos import InvalidUrlError, RepositoryNotFound
from zpm.services import CommitResult


def test_values_are_stable():
    assert [int(code) for code in ExitCode] == [0, 1, 2, 3, 4, 5, 100, 101, 102, 103]


def test_informational_codes_are_not_errors():
    assert ExitCode.INVALID_ARGS.is_error
    assert not ExitCode.OK.is_error
    assert not ExitCode.SECURITY_UPDATE_NEEDED.is_error
    assert ExitCode.REBOOT_NEEDED.description == "a reboot is needed"


@given(st.sampled_from(list(ExitCode)), st.sampled_from([None, ExitCode.OK]))
def test_ok_never_replaces_a_recorded_code(current, new):
    assert merge_exit_code(current, new) == current


@given(st.sampled_from(list(ExitCode)), st.sampled_from([c for c in ExitCode if c != ExitCode.OK]))
def test_later_non_ok_code_wins(current, new):
    assert merge_exit_code(current, new) == new


@pytest.mark.parametrize(
    "exc, expected",
    [
        (RootPrivilegesRequired("x"), ExitCode.PRIVILEGE_ERROR),
        (InvalidUrlError("bogus"), ExitCode.INVALID_ARGS),
        (RepositoryNotFound("main"), ExitCode.ZYPP_ERROR),
        (TransactionLockError(None, 1), ExitCode.ZYPP_ERROR),
        (KeyError("x"), ExitCode.BUG),
    ],
)
def test_exception_mapping(exc, expected):
    assert exit_code_for_exception(exc) == expected


def test_commit_mapping_prefers_restart():
    assert exit_code_for_commit(CommitResult()) == ExitCode.OK
    assert exit_code_for_commit(CommitResult(reboot_needed=True)) == ExitCode.REBOOT_NEEDED
    both = CommitResult(reboot_needed=True, restart_needed=True)
    assert exit_code_for_commit(both) == ExitCode.RESTART_NEEDED


@pytest.mark.parametrize(
    "security, other, expected",
    [
        (0, 0, ExitCode.OK),
        (0, 3, ExitCode.UPDATE_NEEDED),
        (1, 0, ExitCode.SECURITY_UPDATE_NEEDED),
        (2, 5, ExitCode.SECURITY_UPDATE_NEEDED),
    ],
)
def test_patch_mapping(security, other, expected):
    assert exit_code_for_patches(security, other) == expected
