"""Read-only queries: search, info (and the rug info aliases), patch-check,
patches, list-updates and xml-updates."""

from __future__ import annotations

import re
from typing import Callable, Iterable, List, Optional
from xml.sax.saxutils import escape, quoteattr

from ...exitcodes import ExitCode, exit_code_for_patches
from ...services import Resolvable, ResolvablePool, UnknownResolvableKind, parse_kind, version_key
from ..context import Session
from ..descriptors import CommandDescriptor, options
from ..getopt import flag, value
from ..outcome import DONE, CommandFailed, Completed, Outcome
from ..registry import Command
from ..table import Table
from .common import (
    TYPES_HELP,
    best_effort,
    default_update_kind,
    find_updates,
    no_arguments_allowed,
    prepare_pool,
    resolvable_kind,
    too_few_arguments,
)

SYSTEM_REPO = "@System"

SEARCH_HELP = """\
search (se) [options] [querystring...]

Search for packages matching given search strings

  Command options:
    --match-all            Search for a match with all search strings (default)
    --match-any            Search for a match with any of the search strings
    --match-substrings     Matches with search strings may be partial words (default)
    --match-words          Matches with search strings may only be whole words
    --match-exact          Searches for an exact package name
-d, --search-descriptions  Search also in package summaries and descriptions.
-c, --case-sensitive       Perform case-sensitive search.
-i, --installed-only       Show only packages that are already installed.
-u, --uninstalled-only     Show only packages that are not currently installed.
-t, --type <type>          Search only for packages of the specified type.
-r, --repo <alias>         Search only in the repository specified by the alias.
    --sort-by-name         Sort packages by name (default).
    --sort-by-repo         Sort packages by repository.

* and ? wildcards can also be used within search strings.
"""

INFO_HELP = f"""\
info (if) <name> ...

Show full information for packages

  Command options:
-r, --repo <alias|#|URI>  Work only with the repository specified by the alias.
-t, --type <type>         Type of resolvable ({TYPES_HELP})
                          Default: package
"""

RUG_INFO_HELP = """\
{kind}-info <{kind}_name> ...

Show detailed information for {kind}s

This is a rug compatibility alias for '{prog} info -t {kind}'
"""

PATCH_CHECK_HELP = """\
patch-check (pchk)

Check for available patches

  Command options:

-r, --repo <alias|#|URI>  Check for patches only in the repository specified by the alias.
"""

PATCHES_HELP = """\
patches (pch)

List all available patches

  Command options:

-r, --repo <alias|#|URI>  Check for patches only in the repository specified by the alias.
"""

LIST_UPDATES_HELP = f"""\
list-updates (lu) [options]

List all available updates

  Command options:
-t, --type <type>         Type of resolvable ({TYPES_HELP})
                          Default: patch
-r, --repo <alias|#|URI>  List only updates from the repository specified by the alias.
    --best-effort         Do a 'best effort' approach to update, updates to
                          a lower than latest-and-greatest version are
                          also acceptable.
"""

XML_UPDATES_HELP = """\
xml-updates (xu)

Show updates and patches in xml format

  Command options:
-r, --repo <alias|#|URI>  Work only with updates from repository specified by alias.
"""


# ------------------------------------------------------------------ search
_WILDCARDS = {"*": ".*", "?": "."}


def _term_matcher(term: str, session: Session) -> Callable[[str], bool]:
    opts = session.options
    flags = 0 if "case-sensitive" in opts else re.IGNORECASE
    body = "".join(_WILDCARDS.get(ch, re.escape(ch)) for ch in term)
    if "match-exact" in opts:
        pattern = re.compile(body, flags)
        return lambda text: pattern.fullmatch(text) is not None
    if "match-words" in opts:
        body = rf"\b{body}\b"
    pattern = re.compile(body, flags)
    return lambda text: pattern.search(text) is not None


def _search_candidates(pool: ResolvablePool) -> List[Resolvable]:
    seen = {(r.kind, r.name, r.version) for r in pool.available}
    system_only = [r for r in pool.installed if (r.kind, r.name, r.version) not in seen]
    return [*pool.available, *system_only]


def search(session: Session) -> Outcome:
    out = session.out
    opts = session.options
    gopts = session.globals

    kinds: Optional[List[str]] = None
    if "type" in opts:
        kinds = []
        for text in opts["type"]:
            try:
                kinds.append(parse_kind(text))
            except UnknownResolvableKind:
                return CommandFailed(ExitCode.INVALID_ARGS, f"Unknown resolvable type {text}")
    elif gopts.is_rug_compatible:
        kinds = ["package"]

    pool = prepare_pool(session)
    if isinstance(pool, CommandFailed):
        return pool

    uninstalled_only = gopts.disable_system_resolvables or "uninstalled-only" in opts
    installed_only = "installed-only" in opts
    matchers = [_term_matcher(term, session) for term in session.arguments]
    combine = any if "match-any" in opts else all
    descriptions = "search-descriptions" in opts

    def matches(item: Resolvable) -> bool:
        if not matchers:
            return True
        fields = [item.name]
        if descriptions:
            fields += [item.summary, item.description]
        return combine(any(m(text) for text in fields) for m in matchers)

    table = Table(["S", "Repository", "Type", "Name", "Version", "Arch"], style=gopts.table_style)
    for item in _search_candidates(pool):
        if kinds is not None and item.kind not in kinds:
            continue
        if installed_only and not item.installed:
            continue
        if uninstalled_only and item.installed:
            continue
        if not matches(item):
            continue
        table.add(
            "i" if item.installed else "",
            item.repo or SYSTEM_REPO,
            item.kind,
            item.name,
            item.version,
            item.arch,
        )

    if table.empty:
        out.info("No resolvables found.")
        return DONE
    if "sort-by-repo" in opts or "sort-by-catalog" in opts:
        table.sort(1)
    else:
        table.sort(3)
    out.info()
    out.info(str(table))
    return DONE


# -------------------------------------------------------------------- info
_RUG_INFO_KINDS = {
    Command.RUG_PATCH_INFO: "patch",
    Command.RUG_PATTERN_INFO: "pattern",
    Command.RUG_PRODUCT_INFO: "product",
}


def _best(items: Iterable[Resolvable]) -> Resolvable:
    return max(items, key=lambda r: (version_key(r.version), r.installed, bool(r.repo)))


def _print_info(session: Session, item: Resolvable) -> None:
    out = session.out
    out.info(f"Information for {item.kind} {item.name}:")
    out.info()
    out.info(f"Repository: {item.repo or SYSTEM_REPO}")
    out.info(f"Name: {item.name}")
    out.info(f"Version: {item.version}")
    out.info(f"Arch: {item.arch}")
    out.info(f"Installed: {'Yes' if item.installed else 'No'}")
    if item.kind == "patch":
        out.info(f"Category: {item.category or 'optional'}")
        out.info(f"Reboot Required: {'Yes' if item.reboot_needed else 'No'}")
        out.info(f"Restart Required: {'Yes' if item.affects_package_manager else 'No'}")
    out.info(f"Summary: {item.summary}")
    out.info("Description:")
    out.info(item.description)


def info(session: Session) -> Outcome:
    if not session.arguments:
        return too_few_arguments(session, "Required argument missing.", usage=True)

    kind = _RUG_INFO_KINDS.get(session.command)
    if kind is None:
        kind = resolvable_kind(session, "package")
        if isinstance(kind, CommandFailed):
            return kind

    pool = prepare_pool(session)
    if isinstance(pool, CommandFailed):
        return pool
    for name in session.arguments:
        found = pool.by_name(name, kind)
        if not found:
            session.out.info(f"{kind} '{name}' not found.")
            continue
        _print_info(session, _best(found))
        session.out.info()
    return DONE


# ----------------------------------------------------------------- patches
def _patches_table(session: Session, patches: Iterable[Resolvable]) -> Table:
    table = Table(
        ["Repository", "Name", "Version", "Category", "Status"],
        style=session.globals.table_style,
    )
    for patch in patches:
        table.add(
            patch.repo or SYSTEM_REPO,
            patch.name,
            patch.version,
            patch.category or "optional",
            "Installed" if patch.installed else "Needed",
        )
    return table


def patch_check(session: Session) -> Outcome:
    failed = no_arguments_allowed(session)
    if failed is not None:
        return failed
    pool = prepare_pool(session)
    if isinstance(pool, CommandFailed):
        return pool

    needed = find_updates(pool, "patch")
    security = sum(1 for patch in needed if patch.category == "security")
    session.out.always(f"{len(needed)} patches needed ({security} security patches)")
    return Completed(exit_code_for_patches(security, len(needed) - security))


def show_patches(session: Session) -> Outcome:
    failed = no_arguments_allowed(session)
    if failed is not None:
        return failed
    pool = prepare_pool(session)
    if isinstance(pool, CommandFailed):
        return pool

    patches = sorted(
        (r for r in pool.available if r.kind == "patch"),
        key=lambda r: (r.repo, r.name, version_key(r.version)),
    )
    if not patches:
        session.out.info("No patches found.")
        return DONE
    session.out.info(str(_patches_table(session, patches)))
    return DONE


# ------------------------------------------------------------------ updates
def list_updates(session: Session) -> Outcome:
    failed = no_arguments_allowed(session)
    if failed is not None:
        return failed
    kind = resolvable_kind(session, default_update_kind(session))
    if isinstance(kind, CommandFailed):
        return kind
    best_effort(session)

    pool = prepare_pool(session)
    if isinstance(pool, CommandFailed):
        return pool
    updates = find_updates(pool, kind)
    if not updates:
        session.out.info("No updates found.")
        return DONE

    if kind == "patch":
        table = _patches_table(session, updates)
    else:
        installed = {r.name: r.version for r in pool.installed if r.kind == kind}
        table = Table(
            ["S", "Repository", "Name", "Current Version", "Available Version", "Arch"],
            style=session.globals.table_style,
        )
        for item in updates:
            table.add("v", item.repo, item.name, installed.get(item.name, ""), item.version, item.arch)
    session.out.info(str(table))
    return DONE


def _xml_update(item: Resolvable, category: str) -> str:
    return (
        f"<update category={quoteattr(category)} name={quoteattr(item.name)} "
        f"edition={quoteattr(item.version)} arch={quoteattr(item.arch)} kind={quoteattr(item.kind)}>\n"
        f"  <summary>{escape(item.summary)}</summary>\n"
        f"  <description>{escape(item.description)}</description>\n"
        f"  <source alias={quoteattr(item.repo)}/>\n"
        "</update>"
    )


def xml_updates(session: Session) -> Outcome:
    pool = prepare_pool(session)
    if isinstance(pool, CommandFailed):
        return pool
    out = session.out

    patches = find_updates(pool, "patch")
    # patches touching the package manager go first and alone
    urgent = [p for p in patches if p.affects_package_manager]
    out.always('<update-status version="0.6">')
    out.always("<update-list>")
    for patch in urgent or patches:
        out.always(_xml_update(patch, patch.category or "optional"))
    if not urgent:
        for item in find_updates(pool, "package"):
            out.always(_xml_update(item, "package"))
    out.always("</update-list>")
    out.always("</update-status>")
    return DONE


_REPO_OPTIONS = (value("repo", "r"), value("catalog", "c"))

DESCRIPTORS = (
    CommandDescriptor(
        Command.SEARCH,
        options(
            flag("installed-only", "i"),
            flag("uninstalled-only", "u"),
            flag("match-all"),
            flag("match-any"),
            flag("match-substrings"),
            flag("match-words"),
            flag("match-exact"),
            flag("search-descriptions", "d"),
            flag("case-sensitive", "c"),
            value("type", "t"),
            flag("sort-by-name"),
            flag("sort-by-catalog"),
            flag("sort-by-repo"),
            value("catalog"),
            value("repo", "r"),
        ),
        SEARCH_HELP,
        search,
    ),
    CommandDescriptor(
        Command.INFO,
        options(value("type", "t"), *_REPO_OPTIONS),
        INFO_HELP,
        info,
    ),
    *(
        CommandDescriptor(
            command,
            options(value("catalog", "c")),
            RUG_INFO_HELP.format(kind=kind, prog="zpm"),
            info,
        )
        for command, kind in _RUG_INFO_KINDS.items()
    ),
    CommandDescriptor(Command.PATCH_CHECK, options(*_REPO_OPTIONS), PATCH_CHECK_HELP, patch_check),
    CommandDescriptor(Command.SHOW_PATCHES, options(*_REPO_OPTIONS), PATCHES_HELP, show_patches),
    CommandDescriptor(
        Command.LIST_UPDATES,
        options(*_REPO_OPTIONS, value("type", "t"), flag("best-effort")),
        LIST_UPDATES_HELP,
        list_updates,
    ),
    CommandDescriptor(
        Command.XML_LIST_UPDATES_PATCHES,
        options(value("repo", "r")),
        XML_UPDATES_HELP,
        xml_updates,
    ),
)
