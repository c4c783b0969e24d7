"""Git operations module.

Usage:
    from chartrel.git import GitGateway, parse_owner_and_repo

    gateway = GitGateway(console=console)
    owner_repo = gateway.get_owner_and_repo(worktree_path, "origin")
"""

from chartrel.git.gateway import (
    GitError,
    GitErrorKind,
    GitGateway,
    parse_owner_and_repo,
    token_push_url,
)

__all__ = [
    "GitError",
    "GitErrorKind",
    "GitGateway",
    "parse_owner_and_repo",
    "token_push_url",
]
