"""Git operations on the local source mirror.

Usage:
    from promote.git import Repository

    repo = Repository(Path("work/rust"))
    repo.fetch()
"""

from promote.git.repository import GitError, Repository

__all__ = [
    "GitError",
    "Repository",
]
