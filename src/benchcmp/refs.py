"""Resolution of the old/new revisions to compare."""

from __future__ import annotations

from benchcmp.errors import InvalidRefError
from benchcmp.git import GitRepo
from benchcmp.logging import get_logger

log = get_logger("refs")


def _canonical(repo: GitRepo, ref: str) -> str:
    short = repo.short_ref(ref)
    if not repo.is_valid_ref(short):
        raise InvalidRefError(short)
    return short


def resolve_refs(repo: GitRepo, old_ref: str | None, new_ref: str | None) -> tuple[str, str]:
    """Resolve the user's refs into validated abbreviated hashes.

    An empty *new_ref* means the checked-out commit; an empty *old_ref*
    means the first parent of the resolved new commit.

    Returns:
        ``(old, new)`` abbreviated commit hashes.

    Raises:
        InvalidRefError: If either ref does not name a commit.
        RevisionControlError: If git cannot be queried.
    """
    new = _canonical(repo, new_ref or repo.current_ref())
    old = _canonical(repo, old_ref or repo.parent_ref(new))
    log.debug("Resolved refs: old=%s new=%s", old, new)
    return old, new
