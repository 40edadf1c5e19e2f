"""Git queries and checkouts used to build each revision.

All commands run inside the repository being benchmarked. Failures
surface as :class:`~benchcmp.errors.RevisionControlError`; callers decide
whether that aborts a build or only merits a warning.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

from benchcmp.errors import RevisionControlError
from benchcmp.logging import get_logger

log = get_logger("git")


def _tail(text: str, limit: int = 400) -> str:
    text = (text or "").strip()
    return text[-limit:]


class GitRepo:
    """A git working tree that benchcmp checks revisions out of."""

    def __init__(self, repo_dir: Path) -> None:
        self.repo_dir = repo_dir

    def _git(self, *args: str, timeout: int = 60) -> subprocess.CompletedProcess[str]:
        cmd = ["git", *args]
        log.debug("Running: %s", " ".join(cmd))
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                cwd=str(self.repo_dir),
                timeout=timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise RevisionControlError(f"error running {' '.join(cmd)}: {exc}") from exc

    def _rev_parse(self, *args: str) -> str:
        proc = self._git("rev-parse", *args)
        if proc.returncode != 0:
            raise RevisionControlError(
                f"git rev-parse {' '.join(args)} failed: {_tail(proc.stderr)}"
            )
        return proc.stdout.strip()

    def current_ref(self) -> str:
        """Return the full hash of the checked-out commit."""
        return self._rev_parse("HEAD")

    def parent_ref(self, ref: str) -> str:
        """Return the full hash of the first parent of *ref*."""
        return self._rev_parse(f"{ref}~")

    def short_ref(self, ref: str) -> str:
        """Return the abbreviated hash of *ref*.

        Refs git cannot resolve are returned unchanged so that
        :meth:`is_valid_ref` can reject them with the user's spelling.
        """
        proc = self._git("rev-parse", "--short", ref)
        if proc.returncode != 0:
            return ref
        return proc.stdout.strip() or ref

    def is_valid_ref(self, ref: str) -> bool:
        """True if *ref* names a commit."""
        proc = self._git("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}")
        return proc.returncode == 0

    def symbolic_ref(self) -> str | None:
        """Return the checked-out branch name, or None for a detached HEAD."""
        proc = self._git("symbolic-ref", "--quiet", "--short", "HEAD")
        if proc.returncode == 0:
            return proc.stdout.strip() or None
        if proc.returncode == 1:
            return None
        raise RevisionControlError(f"git symbolic-ref failed: {_tail(proc.stderr)}")

    def checkout(self, ref: str, post_checkout: str | None = None) -> None:
        """Check out *ref*, then run the optional *post_checkout* shell command.

        Raises:
            RevisionControlError: If the checkout or the hook fails.
        """
        proc = self._git("checkout", "--quiet", ref)
        if proc.returncode != 0:
            raise RevisionControlError(f"git checkout {ref} failed: {_tail(proc.stderr)}")
        if not post_checkout:
            return

        log.debug("Running post-checkout hook: %s", post_checkout)
        try:
            hook = subprocess.run(
                post_checkout,
                shell=True,
                capture_output=True,
                text=True,
                cwd=str(self.repo_dir),
                check=False,
            )
        except OSError as exc:
            raise RevisionControlError(f"post-checkout command failed: {exc}") from exc
        if hook.returncode != 0:
            raise RevisionControlError(
                f"post-checkout command {post_checkout!r} exited with status "
                f"{hook.returncode}: {_tail(hook.stderr or hook.stdout)}"
            )
