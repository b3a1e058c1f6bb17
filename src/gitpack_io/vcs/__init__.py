"""Version-control adapters."""

from gitpack_io.vcs.git import GitVcs

__all__ = ["GitVcs"]
