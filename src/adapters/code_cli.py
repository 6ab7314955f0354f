"""Adaptador del binario de VS Code (`code`).

Cada invocación es un `asyncio` subprocess con stdout/stderr capturados.
El timeout es una carrera entre el proceso y `asyncio.wait_for`: si vence,
el proceso se mata y el resultado sale con `timed_out=True`.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import shlex
import shutil
from typing import Mapping, Sequence

from core.domain.models import ProcessResult
from core.errors import ExtensionQueryError, PackageManagerNotFoundError
from core.log_config import get_logger

VERSION_TIMEOUT_SECONDS = 15.0
LIST_TIMEOUT_SECONDS = 30.0


def _fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    # El proceso puede haber terminado entre el timeout y el kill.
    with contextlib.suppress(ProcessLookupError):
        proc.kill()
    await proc.wait()


async def run_process(
    argv: Sequence[str],
    *,
    timeout: float,
    env: Mapping[str, str] | None = None,
    logger: logging.Logger | None = None,
) -> ProcessResult:
    """Ejecuta un comando y devuelve su resultado sin lanzar por exit != 0.

    - Un error al lanzar el proceso (binario ausente, permisos) se devuelve
      como `exit_code=None` con el mensaje en `stderr`.
    - Al vencer `timeout` (segundos) el proceso se mata.
    """

    log = get_logger(logger, "process")
    argv_list = list(argv)
    log.debug("CMD %s", _fmt_argv(argv_list))

    try:
        proc = await asyncio.create_subprocess_exec(
            *argv_list,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=dict(os.environ, **(env or {})),
        )
    except OSError as exc:
        log.debug("CMD %s could not start: %s", _fmt_argv(argv_list), exc)
        return ProcessResult(exit_code=None, stderr=str(exc))

    try:
        out, err = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        await _terminate(proc)
        log.debug("CMD %s timed out after %ss", _fmt_argv(argv_list), timeout)
        return ProcessResult(exit_code=proc.returncode, timed_out=True)

    stdout = out.decode("utf-8", errors="replace")
    stderr = err.decode("utf-8", errors="replace")
    if stdout.strip():
        log.debug("STDOUT %s", stdout.strip())
    if stderr.strip():
        log.debug("STDERR %s", stderr.strip())

    return ProcessResult(exit_code=proc.returncode, stdout=stdout, stderr=stderr)


class CodeCLI:
    """`ExtensionManager` sobre el CLI de VS Code."""

    def __init__(self, binary: str = "code", *, logger: logging.Logger | None = None) -> None:
        self._binary = binary
        self._logger = logger
        self._log = get_logger(logger, "code")

    @property
    def binary(self) -> str:
        return self._binary

    def _argv(self, *args: str) -> list[str]:
        # En Windows `code` es un `code.cmd`: hay que resolver la ruta completa.
        resolved = shutil.which(self._binary) or self._binary
        return [resolved, *args]

    async def _run(self, *args: str, timeout: float) -> ProcessResult:
        # Sin color ni prompts interactivos del editor.
        return await run_process(
            self._argv(*args),
            timeout=timeout,
            env={"FORCE_COLOR": "0"},
            logger=self._logger,
        )

    async def version(self) -> str:
        result = await self._run("--version", timeout=VERSION_TIMEOUT_SECONDS)
        if not result.ok:
            raise PackageManagerNotFoundError(
                f"'{self._binary}' is not installed or not on PATH ({result.describe_failure()}). "
                "Install VS Code and enable the shell command: https://code.visualstudio.com/"
            )
        lines = result.stdout.strip().splitlines()
        version = lines[0].strip() if lines else "unknown"
        self._log.info("%s version %s", self._binary, version)
        return version

    async def list_extensions(self) -> list[str]:
        result = await self._run("--list-extensions", timeout=LIST_TIMEOUT_SECONDS)
        if not result.ok:
            raise ExtensionQueryError(
                f"'{self._binary} --list-extensions' failed: {result.describe_failure()}"
            )
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    async def install_extension(self, extension_id: str, *, timeout: float) -> ProcessResult:
        return await self._run("--install-extension", extension_id, timeout=timeout)
