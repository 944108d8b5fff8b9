"""Process entry point: global options, dispatch and teardown."""

from __future__ import annotations

import logging
import sys
from typing import List, Optional, Sequence

from .. import config
from ..exitcodes import ExitCode
from ..logging_config import setup_logging
from ..repos import RepositoryError
from .context import Session
from .globalopts import process_global_options
from .guard import safe_do_command
from .registry import Command
from .shell import command_shell

logger = logging.getLogger(__name__)


def remove_additional_repos(session: Session) -> None:
    """Unregister the temporary ``--plus-repo`` repositories, once."""

    registered, session.registered_repos = session.registered_repos, []
    for repo in registered:
        try:
            session.manager.remove_repository(repo.alias)
        except RepositoryError as exc:
            logger.warning("cannot remove temporary repository %s: %s", repo.alias, exc)
        else:
            logger.debug("removed temporary repository %s", repo.alias)


def run(session: Session, argv: Sequence[str]) -> ExitCode:
    stop = process_global_options(session, argv)
    setup_logging(session.globals.verbosity)
    if stop is not None:
        session.state.record(stop.exit_code)
        return session.exit_code

    state = session.state
    if state.running_help:
        return safe_do_command(session)
    if state.command is Command.SHELL:
        return command_shell(session)
    if state.command is Command.NONE:
        return session.exit_code
    return safe_do_command(session)


def main(argv: Optional[List[str]] = None, *, session: Optional[Session] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    if session is None:
        session = Session()
    setup_logging()
    logger.info("===== %s %s =====", config.PACKAGE_NAME, config.VERSION)
    try:
        return int(run(session, argv))
    finally:
        remove_additional_repos(session)
        session.out.close_envelope()
        logger.info("===== exit =====")


__all__ = ["main", "remove_additional_repos", "run"]
