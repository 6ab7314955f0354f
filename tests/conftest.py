"""
Shared test fixtures and fakes.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Iterable, Mapping

import pytest

from core.config import AppSettings
from core.domain.models import ProcessResult, Source
from core.errors import (
    ExtensionQueryError,
    FetchTimeoutError,
    HttpStatusError,
    PackageManagerNotFoundError,
)

PRIMARY = Source(name="primary", base_url="https://primary.example/cfg", timeout=1.0)
MIRROR = Source(name="mirror", base_url="https://mirror.example/cfg", timeout=2.0)


class FakeExtensionManager:
    """In-memory editor CLI.

    ``fail`` maps an id to how many attempts fail before succeeding
    (-1 = always fails). Ids in ``unverified`` report exit 0 but never show
    up in ``list_extensions``.
    """

    def __init__(
        self,
        installed: Iterable[str] = (),
        *,
        fail: Mapping[str, int] | None = None,
        unverified: Iterable[str] = (),
        missing: bool = False,
        list_error: bool = False,
    ) -> None:
        self.installed = list(installed)
        self.fail = dict(fail or {})
        self.unverified = set(unverified)
        self.missing = missing
        self.list_error = list_error
        self.calls: list[str] = []
        self.timeouts: list[float] = []
        self.events: list[tuple[str, str]] = []
        self.list_calls = 0
        self.active = 0
        self.max_active = 0

    async def version(self) -> str:
        if self.missing:
            raise PackageManagerNotFoundError("'code' is not installed or not on PATH")
        return "1.95.3"

    async def list_extensions(self) -> list[str]:
        self.list_calls += 1
        if self.list_error:
            raise ExtensionQueryError("'code --list-extensions' failed: exit code 1")
        return list(self.installed)

    async def install_extension(self, extension_id: str, *, timeout: float) -> ProcessResult:
        self.calls.append(extension_id)
        self.timeouts.append(timeout)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.events.append(("start", extension_id))
        await asyncio.sleep(0)
        self.events.append(("end", extension_id))
        self.active -= 1

        remaining = self.fail.get(extension_id, 0)
        if remaining != 0:
            if remaining > 0:
                self.fail[extension_id] = remaining - 1
            return ProcessResult(exit_code=1, stderr=f"Failed Installing Extensions: {extension_id}")

        if extension_id not in self.unverified and extension_id not in self.installed:
            self.installed.append(extension_id)
        return ProcessResult(exit_code=0, stdout=f"Extension '{extension_id}' was successfully installed.")


class DictFetcher:
    """Fetcher backed by ``{(source_name, path): content}``.

    Missing entries answer 404; entries whose value is ``TimeoutError``
    simulate a timeout.
    """

    def __init__(self, contents: Mapping[tuple[str, str], object]) -> None:
        self.contents = dict(contents)
        self.calls: list[tuple[str, str]] = []

    async def fetch(self, source: Source, resource_path: str) -> str:
        self.calls.append((source.name, resource_path))
        url = source.url_for(resource_path)
        value = self.contents.get((source.name, resource_path))
        if value is TimeoutError:
            raise FetchTimeoutError(source.name, url, source.timeout)
        if value is None:
            raise HttpStatusError(source.name, url, 404)
        return str(value)

    def paths(self) -> list[str]:
        return [path for _, path in self.calls]


@pytest.fixture
def settings(tmp_path: Path) -> AppSettings:
    return AppSettings(
        _env_file=None,
        sources=[PRIMARY, MIRROR],
        vscode_user_dir=tmp_path / "User",
        retry_delay_ms=0,
    )


@pytest.fixture
def user_dir(settings: AppSettings) -> Path:
    path = settings.resolved_user_dir()
    path.mkdir(parents=True)
    return path
