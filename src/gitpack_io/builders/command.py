"""Builder that runs a module's build script as a child process."""

from __future__ import annotations

import asyncio
import os
import sys
import tempfile
from pathlib import Path

from pydantic import ValidationError

from gitpack_core.ports.builder import (
    BuilderError,
    BuilderErrorCode,
    BuilderErrorDetails,
    BuilderErrorInfo,
    BuilderProtocol,
)
from gitpack_schemas.config import BuilderConfig
from gitpack_schemas.modules import AssetReport, ModuleAsset, ModuleDescriptor

ASSET_REPORT_ENV = "GITPACK_ASSET_REPORT"
MODULE_NAME_ENV = "GITPACK_MODULE_NAME"

_STDIO_TARGETS: dict[str, int | None] = {
    "inherit": None,
    "pipe": asyncio.subprocess.PIPE,
    "ignore": asyncio.subprocess.DEVNULL,
}


class CommandBuilder(BuilderProtocol):
    """Run ``launch`` with an interpreter and read back the asset report.

    The child receives the report path in ``GITPACK_ASSET_REPORT`` and must
    write ``{"chunks": {...}, "assets": [...]}`` there before exiting 0.
    Relative report paths resolve against the builder ``cwd``.
    """

    name = "command"

    async def build(self, module: ModuleDescriptor) -> ModuleAsset:
        """Run the module build script.

        Args:
            module: Normalized module descriptor.

        Returns:
            ModuleAsset: Absolute output paths reported by the script.

        Raises:
            BuilderError: If the process fails, times out, or the report is
                missing or malformed.
        """
        config = module.builder
        with tempfile.TemporaryDirectory(prefix="gitpack-") as report_dir:
            report_path = Path(report_dir) / "assets.json"
            await self._run_process(module, config, report_path)
            report = self._read_report(module, report_path)
        return self._to_asset(module, config, report)

    async def _run_process(
        self, module: ModuleDescriptor, config: BuilderConfig, report_path: Path
    ) -> None:
        command = [config.exec_path or sys.executable, *config.exec_args, config.launch]
        env = {
            **os.environ,
            **config.env,
            ASSET_REPORT_ENV: str(report_path),
            MODULE_NAME_ENV: module.name,
        }
        stdio = "ignore" if config.silent else config.stdio
        target = _STDIO_TARGETS[stdio]
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=config.cwd,
                env=env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=target,
                stderr=target,
                user=config.uid,
                group=config.gid,
            )
        except OSError as exc:
            raise _builder_error(
                BuilderErrorCode.EXECUTION_FAILED,
                f"Unable to start builder for {module.name}: {exc}",
                module,
            ) from exc

        try:
            _, stderr = await asyncio.wait_for(
                process.communicate(), timeout=config.timeout
            )
        except TimeoutError as exc:
            process.kill()
            await process.wait()
            raise _builder_error(
                BuilderErrorCode.TIMEOUT,
                f"Builder for {module.name} timed out after {config.timeout}s",
                module,
            ) from exc

        if process.returncode != 0:
            reason = None
            if stderr:
                reason = stderr.decode("utf-8", errors="replace").strip() or None
            raise _builder_error(
                BuilderErrorCode.EXECUTION_FAILED,
                f"Builder for {module.name} exited with status {process.returncode}",
                module,
                returncode=process.returncode,
                reason=reason,
            )

    def _read_report(
        self, module: ModuleDescriptor, report_path: Path
    ) -> AssetReport:
        try:
            payload = report_path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise _builder_error(
                BuilderErrorCode.INVALID_REPORT,
                f"Builder for {module.name} did not write an asset report",
                module,
            ) from exc
        except OSError as exc:
            raise _builder_error(
                BuilderErrorCode.INVALID_REPORT,
                f"Builder for {module.name} wrote an unreadable asset report",
                module,
                reason=str(exc),
            ) from exc
        try:
            return AssetReport.model_validate_json(payload, strict=False)
        except ValidationError as exc:
            invalid_json = any(
                error["type"] == "json_invalid" for error in exc.errors()
            )
            problem = "is not valid JSON" if invalid_json else "failed validation"
            raise _builder_error(
                BuilderErrorCode.INVALID_REPORT,
                f"Asset report for {module.name} {problem}",
                module,
                reason=str(exc),
            ) from exc

    def _to_asset(
        self, module: ModuleDescriptor, config: BuilderConfig, report: AssetReport
    ) -> ModuleAsset:
        base_dir = Path(config.cwd)
        return ModuleAsset(
            name=module.name,
            chunks={
                chunk: _absolute(path, base_dir)
                for chunk, path in report.chunks.items()
            },
            assets=[_absolute(path, base_dir) for path in report.assets],
        )


def build_command_builder() -> CommandBuilder:
    """Factory used when registering the command builder.

    Returns:
        CommandBuilder: New builder instance.
    """
    return CommandBuilder()


def _absolute(path: str, base_dir: Path) -> str:
    return os.path.normpath(os.path.join(str(base_dir), path))


def _builder_error(
    code: BuilderErrorCode,
    message: str,
    module: ModuleDescriptor,
    *,
    returncode: int | None = None,
    reason: str | None = None,
) -> BuilderError:
    return BuilderError(
        BuilderErrorInfo(
            code=code,
            message=message,
            details=BuilderErrorDetails(
                builder=module.builder.name,
                module=module.name,
                returncode=returncode,
                reason=reason,
            ),
        )
    )
