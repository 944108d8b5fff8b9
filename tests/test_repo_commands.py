from __future__ import annotations

from zpm.exitcodes import ExitCode
from zpm.repos import RepositoryError, read_repo_file
from zpm.cli import main

from conftest import repo


def test_list_repositories_table(session, manager, capsys):
    manager.repos = [repo("main"), repo("extra", enabled=False, autorefresh=False)]

    assert main(["lr"], session=session) == 0

    rows = [[cell.strip() for cell in line.split("|")] for line in capsys.readouterr().out.splitlines()]
    assert rows[0] == ["#", "Alias", "Name", "Enabled", "Refresh"]
    assert rows[2] == ["1", "main", "main", "Yes", "Yes"]
    assert rows[3] == ["2", "extra", "extra", "No", "No"]


def test_verbose_listing_adds_uri_column(session, manager, capsys):
    manager.repos = [repo("main", "http://mirror.example.org/main")]

    main(["-v", "repos"], session=session)

    assert "http://mirror.example.org/main" in capsys.readouterr().out


def test_empty_listing_suggests_addrepo(session, capsys):
    assert main(["lr"], session=session) == 0
    assert "Use the 'zpm addrepo' command" in capsys.readouterr().out


def test_export_writes_a_repo_file(session, manager, tmp_path):
    manager.repos = [repo("main"), repo("extra", priority=10)]
    target = tmp_path / "all.repo"

    assert main(["lr", "--export", str(target)], session=session) == 0

    exported = read_repo_file(str(target))
    assert [r.alias for r in exported] == ["main", "extra"]
    assert exported[1].priority == 10


def test_export_failure_is_a_library_error(session, manager, tmp_path):
    manager.repos = [repo("main")]
    blocker = tmp_path / "file"
    blocker.write_text("x")

    assert main(["lr", "-e", str(blocker / "all.repo")], session=session) == ExitCode.ZYPP_ERROR


def test_addrepo(session, manager, capsys):
    code = main(["ar", "-n", "http://example.com/oss", "oss"], session=session)

    assert code == 0
    assert manager.added == [("oss", True)]
    added = manager.repos[0]
    assert added.url == "http://example.com/oss"
    assert added.enabled and not added.autorefresh
    assert "Repository 'oss' successfully added" in capsys.readouterr().out


def test_addrepo_respects_no_gpg_checks(session, manager):
    main(["--no-gpg-checks", "ar", "-d", "/srv/repo", "local"], session=session)

    added = manager.repos[0]
    assert added.url == "dir:///srv/repo"
    assert not added.enabled
    assert not added.gpgcheck


def test_addrepo_argument_errors(session, manager, capsys):
    assert main(["ar", "http://example.com/oss"], session=session) == ExitCode.INVALID_ARGS
    assert "At least URL and alias are required" in capsys.readouterr().err
    assert manager.added == []


def test_addrepo_too_many_arguments(session, manager, capsys):
    assert main(["ar", "a", "b", "c"], session=session) == ExitCode.INVALID_ARGS
    assert "Too many arguments." in capsys.readouterr().err


def test_addrepo_invalid_type(session, manager, capsys):
    code = main(["ar", "-t", "debian", "http://example.com/oss", "oss"], session=session)

    assert code == ExitCode.INVALID_ARGS
    assert "not a valid repository type: debian" in capsys.readouterr().err


def test_addrepo_invalid_url(session, manager):
    assert main(["ar", "gopher://x/y", "oss"], session=session) == ExitCode.INVALID_ARGS


def test_addrepo_duplicate_alias(session, manager, capsys):
    manager.repos = [repo("oss")]

    assert main(["ar", "http://example.com/other", "oss"], session=session) == ExitCode.ZYPP_ERROR
    assert "already exists" in capsys.readouterr().err


def test_addrepo_from_repo_file(session, manager, tmp_path):
    source = tmp_path / "extra.repo"
    source.write_text(
        "[one]\nname=One\nbaseurl=http://example.com/one\n\n"
        "[two]\nbaseurl=http://example.com/two\nenabled=0\n",
        encoding="utf-8",
    )

    assert main(["ar", "-r", str(source)], session=session) == 0
    assert [alias for alias, _ in manager.added] == ["one", "two"]
    assert not manager.repos[1].enabled


def test_addrepo_from_missing_file(session, manager, tmp_path):
    code = main(["ar", "-r", str(tmp_path / "missing.repo")], session=session)
    assert code == ExitCode.ZYPP_ERROR


def test_removerepo_by_alias(session, manager, capsys):
    manager.repos = [repo("main"), repo("extra")]

    assert main(["rr", "extra"], session=session) == 0
    assert manager.removed == ["extra"]
    assert "Repository 'extra' has been removed." in capsys.readouterr().out


def test_removerepo_by_url_with_loose_auth(session, manager):
    manager.repos = [repo("secret", "http://user:pw@example.com/repo")]

    main(["rr", "--loose-auth", "http://example.com/repo"], session=session)

    assert manager.removed == ["secret"]


def test_removerepo_not_found_is_not_an_error(session, manager, capsys):
    manager.repos = [repo("main")]

    assert main(["rr", "nothere"], session=session) == 0
    assert manager.removed == []
    assert "Repository not found by given alias or URL." in capsys.readouterr().err


def test_removerepo_requires_an_argument(session, capsys):
    assert main(["rr"], session=session) == ExitCode.INVALID_ARGS
    assert "Required argument missing." in capsys.readouterr().err


def test_renamerepo(session, manager):
    manager.repos = [repo("old")]

    assert main(["nr", "old", "new"], session=session) == 0
    assert manager.repos[0].alias == "new"


def test_renamerepo_unknown_alias(session, manager):
    assert main(["nr", "old", "new"], session=session) == ExitCode.ZYPP_ERROR


def test_modifyrepo(session, manager, capsys):
    manager.repos = [repo("main")]

    assert main(["mr", "-d", "--disable-autorefresh", "main"], session=session) == 0

    assert not manager.repos[0].enabled
    assert not manager.repos[0].autorefresh
    out = capsys.readouterr().out
    assert "Repository 'main' has been successfully disabled." in out
    assert "Autorefresh has been disabled for repository 'main'." in out


def test_modifyrepo_conflicting_flags_change_nothing(session, manager, capsys):
    manager.repos = [repo("main")]

    assert main(["mr", "-e", "-d", "main"], session=session) == 0

    assert manager.repos[0].enabled
    captured = capsys.readouterr()
    assert "Ignoring --enable and --disable given together." in captured.err
    assert "Nothing to change" in captured.out


def test_refresh_all_enabled(session, manager, capsys):
    manager.repos = [repo("main"), repo("off", enabled=False), repo("extra")]

    assert main(["ref"], session=session) == 0

    assert [alias for alias, *_ in manager.refreshed] == ["main", "extra"]
    assert "All repositories have been refreshed." in capsys.readouterr().out


def test_refresh_selected_by_number(session, manager):
    manager.repos = [repo("main"), repo("extra")]

    main(["refresh", "-f", "2"], session=session)

    assert manager.refreshed == [("extra", True, False, False)]


def test_refresh_unknown_repository(session, manager, capsys):
    manager.repos = [repo("main")]

    assert main(["ref", "nothere"], session=session) == ExitCode.INVALID_ARGS
    assert "Repository 'nothere' not found" in capsys.readouterr().err


def test_refresh_build_and_download_only_conflict(session, manager):
    manager.repos = [repo("main")]

    assert main(["ref", "-B", "-D"], session=session) == ExitCode.INVALID_ARGS
    assert manager.refreshed == []


def test_refresh_without_enabled_repositories(session, manager, capsys):
    manager.repos = [repo("off", enabled=False)]

    assert main(["ref"], session=session) == 0
    assert "There are no enabled repositories defined." in capsys.readouterr().err


def test_refresh_errors_are_library_errors(session, manager, monkeypatch, capsys):
    manager.repos = [repo("main"), repo("broken")]
    refresh = manager.refresh_repository

    def flaky(target, **kwargs):
        if target.alias == "broken":
            raise RepositoryError("Download (curl) error for 'broken'")
        return refresh(target, **kwargs)

    monkeypatch.setattr(manager, "refresh_repository", flaky)

    assert main(["ref"], session=session) == ExitCode.ZYPP_ERROR
    err = capsys.readouterr().err
    assert "Skipping repository 'broken' because of the above error." in err
    assert "Some of the repositories have not been refreshed" in err


def test_repository_commands_require_root(make_session, manager):
    session = make_session(root=False)
    manager.repos = [repo("main")]

    assert main(["mr", "-d", "main"], session=session) == ExitCode.PRIVILEGE_ERROR
    assert manager.repos[0].enabled
