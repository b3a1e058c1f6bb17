"""Git-backed change oracle and revision lookup."""

from __future__ import annotations

import asyncio
from pathlib import Path

from gitpack_core.ports.vcs import (
    VcsError,
    VcsErrorCode,
    VcsErrorDetails,
    VcsErrorInfo,
    VcsProtocol,
)

_NOT_A_REPOSITORY_MARKER = "not a git repository"


class GitVcs(VcsProtocol):
    """Answer change and revision queries by shelling out to ``git``."""

    def __init__(self, executable: str = "git") -> None:
        """Initialize the adapter.

        Args:
            executable: Git executable name or path.
        """
        self._executable = executable

    async def has_changed(self, path: str) -> bool:
        """Report whether a path has uncommitted or untracked changes.

        Args:
            path: Absolute path to query.

        Returns:
            bool: True when ``git status --porcelain`` lists anything.

        Raises:
            VcsError: If the path is outside a repository or git fails.
        """
        output = await self._git("has_changed", path, "status", "--porcelain")
        return bool(output.strip())

    async def commit_id(self, path: str) -> str:
        """Return the last commit touching a path, or ``HEAD`` when untracked.

        Args:
            path: Absolute path to query.

        Returns:
            str: Full commit hash.

        Raises:
            VcsError: If the path is outside a repository or git fails.
        """
        output = await self._git(
            "commit_id", path, "log", "-n", "1", "--format=%H"
        )
        commit = output.strip()
        if commit:
            return commit
        head = await self._run("commit_id", path, ["rev-parse", "HEAD"])
        return head.strip()

    async def _git(self, operation: str, path: str, *args: str) -> str:
        return await self._run(operation, path, [*args, "--", path])

    async def _run(self, operation: str, path: str, args: list[str]) -> str:
        command = [self._executable, *args]
        cwd = _nearest_directory(Path(path))
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise VcsError(
                VcsErrorInfo(
                    code=VcsErrorCode.COMMAND_FAILED,
                    message=f"Unable to run git for {path}: {exc}",
                    details=VcsErrorDetails(
                        operation=operation, path=path, command=command
                    ),
                )
            ) from exc
        stdout, stderr = await process.communicate()
        error_output = stderr.decode("utf-8", errors="replace").strip()
        if process.returncode != 0:
            code = VcsErrorCode.COMMAND_FAILED
            message = f"git {args[0]} failed for {path}"
            if _NOT_A_REPOSITORY_MARKER in error_output.lower():
                code = VcsErrorCode.NOT_A_REPOSITORY
                message = f"Path is not inside a git repository: {path}"
            raise VcsError(
                VcsErrorInfo(
                    code=code,
                    message=message,
                    details=VcsErrorDetails(
                        operation=operation,
                        path=path,
                        command=command,
                        returncode=process.returncode,
                        stderr=error_output or None,
                    ),
                )
            )
        return stdout.decode("utf-8", errors="replace")


def _nearest_directory(path: Path) -> Path:
    # git needs an existing working directory; walk up for missing targets.
    candidate = path if path.is_dir() else path.parent
    while not candidate.exists() and candidate != candidate.parent:
        candidate = candidate.parent
    return candidate
