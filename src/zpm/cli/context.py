"""Session context passed explicitly to every part of the command layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, List, Optional

from .. import config
from ..exitcodes import ExitCode, merge_exit_code
from ..privileges import PrivilegeProbe, is_root
from ..repos import RepoInfo
from ..services import ResourceManager
from .getopt import ParsedOptions
from .output import Output
from .registry import Command
from .table import TableStyle

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .descriptors import CommandDescriptor

ManagerFactory = Callable[["GlobalOptions"], ResourceManager]


@dataclass(slots=True)
class RepoManagerOptions:
    known_repos_path: str = field(default_factory=lambda: config.KNOWN_REPOS_PATH)
    repo_cache_path: str = field(default_factory=lambda: config.REPO_CACHE_PATH)
    raw_cache_path: str = field(default_factory=lambda: config.RAW_CACHE_PATH)


@dataclass(slots=True)
class GlobalOptions:
    verbosity: int = 0
    non_interactive: bool = False
    machine_readable: bool = False
    is_rug_compatible: bool = False
    no_gpg_checks: bool = False
    root_dir: str = config.DEFAULT_ROOT
    rm_options: RepoManagerOptions = field(
        default_factory=lambda: RepoManagerOptions(**config.default_repo_manager_options())
    )
    table_style: TableStyle = TableStyle.ASCII
    disable_system_sources: bool = False
    disable_system_resolvables: bool = False
    no_refresh: bool = False


@dataclass(slots=True)
class SessionState:
    """Per-command state, reset between shell iterations."""

    command: Command = Command.NONE
    options: ParsedOptions = field(default_factory=ParsedOptions)
    argv: List[str] = field(default_factory=list)
    arguments: List[str] = field(default_factory=list)
    descriptor: Optional["CommandDescriptor"] = None
    running_help: bool = False
    running_shell: bool = False
    exit_code: ExitCode = ExitCode.OK
    no_confirm: bool = False
    license_auto_agree: bool = False

    def record(self, code: Optional[ExitCode]) -> ExitCode:
        """Record *code* without ever downgrading a non-OK code to OK."""

        self.exit_code = merge_exit_code(self.exit_code, code)
        return self.exit_code

    def reset(self) -> None:
        self.command = Command.NONE
        self.options = ParsedOptions()
        self.argv = []
        self.arguments = []
        self.descriptor = None
        self.running_help = False
        self.exit_code = ExitCode.OK
        self.no_confirm = False
        self.license_auto_agree = False


class Session:
    """Everything one process run needs: options, state, output and backend.

    There is one session per process. It is created at start-up and handed to
    each component; nothing in the command layer reaches it through globals.
    """

    def __init__(
        self,
        *,
        output: Optional[Output] = None,
        manager_factory: Optional[ManagerFactory] = None,
        privilege_probe: PrivilegeProbe = is_root,
        argv0: str = config.PACKAGE_NAME,
    ) -> None:
        self.globals = GlobalOptions()
        self.state = SessionState()
        self.out = output or Output()
        self.argv0 = argv0
        self.privilege_probe = privilege_probe
        self.additional_repos: List[RepoInfo] = []
        self.registered_repos: List[RepoInfo] = []
        self.current_repo: Optional[RepoInfo] = None
        self._manager_factory = manager_factory or default_manager_factory
        self._manager: Optional[ResourceManager] = None

    # ------------------------------------------------------------ shortcuts
    @property
    def command(self) -> Command:
        return self.state.command

    @property
    def options(self) -> ParsedOptions:
        return self.state.options

    @property
    def arguments(self) -> List[str]:
        return self.state.arguments

    @property
    def exit_code(self) -> ExitCode:
        return self.state.exit_code

    def set_exit_code(self, code: ExitCode) -> None:
        self.state.exit_code = code

    @property
    def running_shell(self) -> bool:
        return self.state.running_shell

    def program(self) -> str:
        """Prefix used in hints: empty inside the shell, the program name outside."""

        return "" if self.state.running_shell else f"{self.argv0} "

    @property
    def non_interactive(self) -> bool:
        """Global ``--non-interactive`` or the current command's ``--no-confirm``."""

        return self.globals.non_interactive or self.state.no_confirm

    def apply_output_mode(self) -> None:
        self.out.verbosity = self.globals.verbosity
        self.out.machine_readable = self.globals.machine_readable
        self.out.non_interactive = self.non_interactive

    # -------------------------------------------------------------- backend
    @property
    def manager(self) -> ResourceManager:
        if self._manager is None:
            self._manager = self._manager_factory(self.globals)
        return self._manager

    @property
    def has_manager(self) -> bool:
        return self._manager is not None

    def is_root(self) -> bool:
        return self.privilege_probe()


def default_manager_factory(gopts: GlobalOptions) -> ResourceManager:
    from ..backend import LocalResourceManager

    return LocalResourceManager(
        known_repos_path=gopts.rm_options.known_repos_path,
        repo_cache_path=gopts.rm_options.repo_cache_path,
        raw_cache_path=gopts.rm_options.raw_cache_path,
        root=gopts.root_dir,
    )


__all__ = [
    "GlobalOptions",
    "ManagerFactory",
    "RepoManagerOptions",
    "Session",
    "SessionState",
    "default_manager_factory",
]
