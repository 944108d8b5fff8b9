from __future__ import annotations

import pytest

from zpm import config
from zpm.exitcodes import ExitCode
from zpm.cli.globalopts import process_global_options
from zpm.cli.output import ENVELOPE_OPEN
from zpm.cli.registry import Command
from zpm.cli.table import TableStyle


def test_relative_root_is_rejected_before_paths_change(session, capsys):
    stop = process_global_options(session, ["--root", "relative/dir", "lr"])

    assert stop is not None
    assert stop.exit_code == ExitCode.INVALID_ARGS
    assert session.exit_code == ExitCode.INVALID_ARGS
    rm = session.globals.rm_options
    assert rm.known_repos_path == config.KNOWN_REPOS_PATH
    assert rm.repo_cache_path == config.REPO_CACHE_PATH
    assert "must be absolute" in capsys.readouterr().err


def test_absolute_root_prefixes_resource_paths(session):
    assert process_global_options(session, ["-R", "/mnt", "lr"]) is None

    rm = session.globals.rm_options
    assert session.globals.root_dir == "/mnt"
    assert rm.known_repos_path == "/mnt" + config.KNOWN_REPOS_PATH
    assert rm.repo_cache_path == "/mnt" + config.REPO_CACHE_PATH
    assert rm.raw_cache_path == "/mnt" + config.RAW_CACHE_PATH


def test_explicit_path_overrides_win_over_root(session):
    process_global_options(session, ["-R", "/mnt", "-D", "/tmp/repos.d", "--raw-cache-dir", "/tmp/raw", "lr"])

    rm = session.globals.rm_options
    assert rm.known_repos_path == "/tmp/repos.d"
    assert rm.raw_cache_path == "/tmp/raw"
    assert rm.repo_cache_path == "/mnt" + config.REPO_CACHE_PATH


def test_repeated_verbose_accumulates(session, capsys):
    process_global_options(session, ["-v", "-v", "-v", "repos"])

    assert session.globals.verbosity == 3
    assert "Verbosity: 3" in capsys.readouterr().out


@pytest.mark.parametrize("argv", [["-q", "-v", "lr"], ["-v", "-q", "lr"], ["-vvq", "lr"]])
def test_quiet_wins_over_verbose_in_any_order(session, argv):
    process_global_options(session, argv)
    assert session.globals.verbosity == -1
    assert session.out.verbosity == -1


def test_no_arguments_means_help(session, capsys):
    stop = process_global_options(session, [])

    assert stop is None
    assert session.state.running_help
    assert session.command is Command.NONE
    assert session.exit_code == ExitCode.OK
    assert "Usage:" in capsys.readouterr().out


def test_version_alone(session, capsys):
    assert process_global_options(session, ["-V"]) is None
    assert not session.state.running_help
    assert session.exit_code == ExitCode.OK
    assert capsys.readouterr().out.strip() == f"{config.PACKAGE_NAME} {config.VERSION}"


def test_unknown_global_option_is_a_syntax_error(session, capsys):
    stop = process_global_options(session, ["--frobnicate", "lr"])

    assert stop.exit_code == ExitCode.SYNTAX_ERROR
    assert session.command is Command.NONE
    assert "frobnicate" in capsys.readouterr().err


def test_unknown_command_prints_hint(session, capsys):
    assert process_global_options(session, ["frobnicate"]) is None

    assert session.command is Command.NONE
    assert session.exit_code == ExitCode.SYNTAX_ERROR
    captured = capsys.readouterr()
    assert "Unknown command 'frobnicate'" in captured.err
    assert "zpm help" in captured.out


def test_help_with_command_selects_that_command(session):
    assert process_global_options(session, ["help", "in", "--dry-run"]) is None

    assert session.command is Command.INSTALL
    assert session.state.running_help
    assert session.state.argv == ["--dry-run"]


def test_help_with_unknown_topic_stops(session, capsys):
    stop = process_global_options(session, ["help", "bogus"])

    assert stop is not None
    assert "Unknown command 'bogus'" in capsys.readouterr().out


def test_help_alone_prints_main_help(session, capsys):
    stop = process_global_options(session, ["help"])

    assert stop is not None
    assert "Commands:" in capsys.readouterr().out


def test_shell_rejects_extra_arguments(session, capsys):
    stop = process_global_options(session, ["shell", "now"])

    assert stop.exit_code == ExitCode.INVALID_ARGS
    assert "Too many arguments" in capsys.readouterr().err


def test_shell_help_flag(session):
    assert process_global_options(session, ["sh", "--help"]) is None
    assert session.command is Command.SHELL
    assert session.state.running_help


def test_plus_repo_builds_additional_repositories(session):
    argv = ["-p", "http://example.com/extra", "--plus-repo", "/srv/local", "install", "foo"]
    assert process_global_options(session, argv) is None

    aliases = [r.alias for r in session.additional_repos]
    assert aliases == ["tmp1", "tmp2"]
    assert session.additional_repos[1].url == "dir:///srv/local"
    assert session.state.argv == ["foo"]


def test_plus_repo_is_ignored_for_repository_commands(session, capsys):
    process_global_options(session, ["-p", "http://example.com/extra", "addrepo"])

    assert session.additional_repos == []
    assert "no effect here" in capsys.readouterr().err


def test_invalid_plus_repo_url(session, capsys):
    stop = process_global_options(session, ["-p", "bogus://", "search"])

    assert stop.exit_code == ExitCode.INVALID_ARGS
    assert "Given URL is invalid" in capsys.readouterr().err


def test_terse_opens_envelope_once(session, capsys):
    process_global_options(session, ["-t", "lr"])
    session.out.open_envelope()

    assert session.globals.machine_readable
    assert capsys.readouterr().out.count(ENVELOPE_OPEN) == 1


def test_invalid_table_style_keeps_default(session, capsys):
    process_global_options(session, ["-s", "42", "lr"])

    assert session.globals.table_style is TableStyle.ASCII
    assert "Invalid table style 42" in capsys.readouterr().err


def test_valid_table_style(session):
    process_global_options(session, ["--table-style", "3", "lr"])
    assert session.globals.table_style is TableStyle.DOUBLE


def test_recorded_flags(session, capsys):
    argv = ["-n", "-r", "--no-refresh", "--disable-repositories", "--disable-system-resolvables", "--no-gpg-checks", "se"]
    process_global_options(session, argv)

    g = session.globals
    assert g.non_interactive and g.is_rug_compatible and g.no_refresh
    assert g.disable_system_sources and g.disable_system_resolvables and g.no_gpg_checks
    assert "Entering non-interactive mode." in capsys.readouterr().out
