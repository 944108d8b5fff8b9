from __future__ import annotations

import os

import pytest

from zpm import config, locking


def test_transaction_lock_blocks_concurrent_attempts(tmp_path):
    path = tmp_path / "zpm.pid"

    with locking.global_transaction_lock(path) as held:
        assert held.held
        assert path.read_text().strip() == str(os.getpid())
        with pytest.raises(locking.TransactionLockError) as exc:
            with locking.global_transaction_lock(path):
                pass

    assert "already in progress" in str(exc.value)
    assert exc.value.holder_pid == os.getpid()
    assert str(os.getpid()) in str(exc.value)


def test_lock_is_released_on_exit(tmp_path):
    path = tmp_path / "run" / "zpm.pid"

    lock = locking.GlobalTransactionLock(path)
    with lock:
        pass

    assert not lock.held
    assert path.read_text() == ""
    with locking.global_transaction_lock(path):
        pass


def test_lock_is_released_when_the_body_fails(tmp_path):
    path = tmp_path / "zpm.pid"

    with pytest.raises(RuntimeError):
        with locking.global_transaction_lock(path):
            raise RuntimeError("boom")

    with locking.global_transaction_lock(path):
        pass


def test_default_path_comes_from_config(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "LOCK_PATH", tmp_path / "configured.pid")
    assert locking.GlobalTransactionLock().path == tmp_path / "configured.pid"


def test_shared_locks_coexist_but_exclude_a_writer(tmp_path):
    path = tmp_path / "zpm.pid"
    shared = locking.LockMode.SHARED

    with locking.global_transaction_lock(path, shared), locking.global_transaction_lock(path, shared):
        with pytest.raises(locking.TransactionLockError) as exc:
            with locking.global_transaction_lock(path):
                pass

    assert exc.value.holder_pid is None
    assert "in use by another process" in str(exc.value)


def test_writer_excludes_readers_and_names_itself(tmp_path):
    path = tmp_path / "zpm.pid"

    with locking.global_transaction_lock(path):
        with pytest.raises(locking.TransactionLockError) as exc:
            with locking.global_transaction_lock(path, locking.LockMode.SHARED):
                pass

    assert exc.value.mode is locking.LockMode.SHARED
    assert exc.value.holder_pid == os.getpid()


def test_reader_leaves_the_pid_file_alone(tmp_path):
    path = tmp_path / "zpm.pid"
    path.write_text("4242\n")

    with locking.global_transaction_lock(path, locking.LockMode.SHARED) as lock:
        assert lock.held

    assert path.read_text() == "4242\n"
