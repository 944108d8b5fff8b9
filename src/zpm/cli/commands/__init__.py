"""Command bodies grouped by family, with their descriptors."""

from . import queries, repos, session, transactions

ALL_DESCRIPTORS = (
    *session.DESCRIPTORS,
    *repos.DESCRIPTORS,
    *transactions.DESCRIPTORS,
    *queries.DESCRIPTORS,
)

__all__ = ["ALL_DESCRIPTORS"]
