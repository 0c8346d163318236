# Overview: Row locking helpers for review decisions on shared records.

from __future__ import annotations


def lock_for_update(query):
    """
    Load rows with SELECT ... FOR UPDATE so two reviewers cannot both see
    a record as pending.

    NOTE: SQLite ignores FOR UPDATE; its single writer serializes commits instead.
    """
    return query.with_for_update()
