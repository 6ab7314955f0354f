"""Motor de reconciliación de extensiones.

Alinea las extensiones instaladas en el editor con una lista deseada:

1. Diff deseadas vs. instaladas (coincidencia exacta de id, se respeta el
   orden de la lista deseada).
2. Las que faltan se instalan en lotes consecutivos de ``max_concurrent``;
   cada lote corre en paralelo y el siguiente no empieza hasta que el lote
   entero ha terminado.
3. Cada id se reintenta hasta ``max_retries`` veces tras el primer intento.
   Un éxito reportado por el proceso se verifica después con una consulta
   independiente a ``list_extensions()`` antes de contarlo como instalado.
4. Todo se agrega en un `ReconciliationSummary` inmutable.

La UI observa el progreso mediante `ReconcileHooks`; aquí no se imprime nada.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, Sequence

from core.config import AppSettings
from core.domain.models import (
    FailedExtension,
    InstallResult,
    ProcessResult,
    ReconciliationSummary,
)
from core.errors import ConfigSyncError
from core.interfaces.package_manager import ExtensionManager
from core.log_config import get_logger

NOT_VERIFIED_REASON = "installed but not verified"


@dataclass(frozen=True)
class ReconcileConfig:
    """Límites de una ejecución de reconciliación."""

    max_concurrent: int = 2
    max_retries: int = 1
    retry_delay_ms: int = 2000
    install_timeout_ms: int = 30_000

    def __post_init__(self) -> None:
        if self.max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.retry_delay_ms < 0 or self.install_timeout_ms <= 0:
            raise ValueError("retry_delay_ms must be >= 0 and install_timeout_ms > 0")

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings,
        *,
        timeout_seconds: float | None = None,
    ) -> "ReconcileConfig":
        """Construye la config; solo el timeout de instalación sigue la opción del usuario.

        El timeout se redondea hacia arriba a milisegundos enteros (mínimo 1 ms).
        """

        install_timeout_ms = settings.install_timeout_ms
        if timeout_seconds is not None:
            install_timeout_ms = max(1, math.ceil(timeout_seconds * 1000))
        return cls(
            max_concurrent=settings.max_concurrent,
            max_retries=settings.max_retries,
            retry_delay_ms=settings.retry_delay_ms,
            install_timeout_ms=install_timeout_ms,
        )


@dataclass(frozen=True)
class ExtensionPlan:
    already_installed: list[str] = field(default_factory=list)
    to_install: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.already_installed) + len(self.to_install)


@dataclass
class ReconcileHooks:
    """Callbacks opcionales para la UI (barras de progreso, tablas en vivo)."""

    batch_start: Callable[[int, int, Sequence[str]], None] | None = None
    retry: Callable[[str, int, str], None] | None = None
    item_done: Callable[[InstallResult], None] | None = None


def diff_extensions(desired: Iterable[str], installed: Iterable[str]) -> ExtensionPlan:
    """Parte ``desired`` en ids ya instalados y pendientes de instalar.

    Los duplicados de ``desired`` se quedan en su primera aparición, así que
    un id nunca cuenta dos veces.
    """

    installed_set = set(installed)
    seen: set[str] = set()
    already: list[str] = []
    missing: list[str] = []
    for extension_id in desired:
        if extension_id in seen:
            continue
        seen.add(extension_id)
        if extension_id in installed_set:
            already.append(extension_id)
        else:
            missing.append(extension_id)
    return ExtensionPlan(already_installed=already, to_install=missing)


def batched(items: Sequence[str], size: int) -> list[list[str]]:
    if size < 1:
        raise ValueError("batch size must be >= 1")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class ExtensionReconciler:
    def __init__(
        self,
        manager: ExtensionManager,
        *,
        logger: logging.Logger | None = None,
        hooks: ReconcileHooks | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self._manager = manager
        self._log = get_logger(logger, "reconcile")
        self._hooks = hooks or ReconcileHooks()
        self._sleep = sleep

    async def reconcile(
        self,
        desired: Sequence[str],
        installed: Sequence[str],
        config: ReconcileConfig | None = None,
        *,
        dry_run: bool = False,
    ) -> ReconciliationSummary:
        config = config or ReconcileConfig()
        plan = diff_extensions(desired, installed)
        skipped = len(plan.already_installed)

        self._log.info(
            "extensions: %d desired, %d already installed, %d to install",
            plan.total,
            skipped,
            len(plan.to_install),
        )

        if not plan.to_install or dry_run:
            return ReconciliationSummary(
                skipped=skipped,
                total=plan.total,
                planned=tuple(plan.to_install) if dry_run else (),
            )

        results: list[InstallResult] = []
        batches = batched(plan.to_install, config.max_concurrent)
        for index, batch in enumerate(batches, start=1):
            if self._hooks.batch_start:
                self._hooks.batch_start(index, len(batches), batch)
            self._log.debug("batch %d/%d: %s", index, len(batches), ", ".join(batch))
            batch_results = await asyncio.gather(
                *(self.install_one(extension_id, config) for extension_id in batch)
            )
            results.extend(batch_results)

        failures = tuple(FailedExtension.from_result(r) for r in results if not r.success)
        return ReconciliationSummary(
            installed=sum(1 for r in results if r.success),
            failed=len(failures),
            skipped=skipped,
            total=plan.total,
            failures=failures,
        )

    async def install_one(self, extension_id: str, config: ReconcileConfig) -> InstallResult:
        """Instala con reintentos y luego verifica. Nunca lanza por fallos de un ítem."""

        max_attempts = config.max_retries + 1
        timeout = config.install_timeout_ms / 1000

        attempt = 0
        while True:
            attempt += 1
            outcome = await self._attempt(extension_id, timeout)
            if outcome.ok:
                break

            error = outcome.describe_failure()
            if attempt >= max_attempts:
                self._log.warning("%s: failed after %d attempt(s): %s", extension_id, attempt, error)
                return self._done(
                    InstallResult(extension_id=extension_id, success=False, error=error, attempts=attempt)
                )

            self._log.info("%s: attempt %d failed (%s); retrying", extension_id, attempt, error)
            if self._hooks.retry:
                self._hooks.retry(extension_id, attempt, error)
            await self._sleep(config.retry_delay_ms / 1000)

        verified, reason = await self.verify(extension_id)
        if not verified:
            self._log.warning("%s: %s", extension_id, reason)
            return self._done(
                InstallResult(extension_id=extension_id, success=False, error=reason, attempts=attempt)
            )

        self._log.info("%s: installed", extension_id)
        return self._done(
            InstallResult(extension_id=extension_id, success=True, attempts=attempt, verified=True)
        )

    async def verify(self, extension_id: str) -> tuple[bool, str | None]:
        """Segunda comprobación, independiente: ¿el editor ya lista el id?"""

        try:
            installed = await self._manager.list_extensions()
        except ConfigSyncError as exc:
            return False, f"{NOT_VERIFIED_REASON} ({exc})"
        if extension_id in installed:
            return True, None
        return False, NOT_VERIFIED_REASON

    async def _attempt(self, extension_id: str, timeout: float) -> ProcessResult:
        try:
            return await self._manager.install_extension(extension_id, timeout=timeout)
        except Exception as exc:  # el proceso ni siquiera se pudo lanzar
            return ProcessResult(exit_code=None, stderr=f"{type(exc).__name__}: {exc}")

    def _done(self, result: InstallResult) -> InstallResult:
        if self._hooks.item_done:
            self._hooks.item_done(result)
        return result
