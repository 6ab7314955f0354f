from __future__ import annotations

import pytest

from conftest import FakeExtensionManager
from core.config import AppSettings
from core.domain.models import ProcessResult
from core.services.reconciler import (
    NOT_VERIFIED_REASON,
    ExtensionReconciler,
    ReconcileConfig,
    ReconcileHooks,
    batched,
    diff_extensions,
)

FAST = ReconcileConfig(max_concurrent=2, max_retries=1, retry_delay_ms=0, install_timeout_ms=30_000)


@pytest.mark.parametrize(
    ("desired", "installed"),
    [
        (["a", "b", "c"], ["b"]),
        (["a", "b"], []),
        ([], ["x"]),
        (["a", "b"], ["a", "b", "z"]),
        (["a", "a", "b"], ["a"]),
    ],
)
def test_diff_partitions_desired(desired: list[str], installed: list[str]) -> None:
    plan = diff_extensions(desired, installed)

    assert set(plan.already_installed) | set(plan.to_install) == set(desired)
    assert not set(plan.already_installed) & set(plan.to_install)
    assert len(plan.already_installed) + len(plan.to_install) == len(set(desired))


def test_diff_keeps_desired_order_and_ignores_duplicates() -> None:
    plan = diff_extensions(["c.c", "a.a", "c.c", "b.b", "a.a"], ["b.b"])

    assert plan.to_install == ["c.c", "a.a"]
    assert plan.already_installed == ["b.b"]
    assert plan.total == 3


def test_diff_is_exact_match() -> None:
    plan = diff_extensions(["Ms-Python.Python"], ["ms-python.python"])
    assert plan.to_install == ["Ms-Python.Python"]


def test_batched_splits_consecutively() -> None:
    assert batched(["a", "b", "c", "d", "e"], 2) == [["a", "b"], ["c", "d"], ["e"]]
    assert batched([], 2) == []
    with pytest.raises(ValueError):
        batched(["a"], 0)


def test_config_defaults_and_timeout_override() -> None:
    settings = AppSettings(_env_file=None)

    default = ReconcileConfig.from_settings(settings)
    assert default == ReconcileConfig(
        max_concurrent=2, max_retries=1, retry_delay_ms=2000, install_timeout_ms=30_000
    )

    overridden = ReconcileConfig.from_settings(settings, timeout_seconds=60)
    assert overridden.install_timeout_ms == 60_000
    assert overridden.max_concurrent == 2
    assert overridden.max_retries == 1
    assert overridden.retry_delay_ms == 2000


@pytest.mark.parametrize(("seconds", "expected_ms"), [(0.0004, 1), (1.0001, 1001), (2.5, 2500)])
def test_config_timeout_rounds_up_to_whole_ms(seconds: float, expected_ms: int) -> None:
    config = ReconcileConfig.from_settings(AppSettings(_env_file=None), timeout_seconds=seconds)
    assert config.install_timeout_ms == expected_ms


def test_config_rejects_invalid_limits() -> None:
    with pytest.raises(ValueError):
        ReconcileConfig(max_concurrent=0)
    with pytest.raises(ValueError):
        ReconcileConfig(max_retries=-1)


@pytest.mark.asyncio
async def test_scenario_one_already_installed() -> None:
    manager = FakeExtensionManager(installed=["b"])
    reconciler = ExtensionReconciler(manager)

    summary = await reconciler.reconcile(["a", "b", "c"], ["b"], FAST)

    assert manager.calls == ["a", "c"]
    assert manager.max_active == 2
    assert summary.installed == 2
    assert summary.failed == 0
    assert summary.skipped == 1
    assert summary.total == 3


@pytest.mark.asyncio
async def test_nothing_to_install_never_touches_manager() -> None:
    manager = FakeExtensionManager(installed=["a", "b"])

    summary = await ExtensionReconciler(manager).reconcile(["a", "b"], ["a", "b"], FAST)

    assert manager.calls == []
    assert manager.list_calls == 0
    assert (summary.installed, summary.failed, summary.skipped) == (0, 0, 2)


@pytest.mark.asyncio
async def test_five_items_run_in_three_sequential_batches() -> None:
    manager = FakeExtensionManager()
    batches: list[list[str]] = []
    hooks = ReconcileHooks(batch_start=lambda index, total, ids: batches.append(list(ids)))

    summary = await ExtensionReconciler(manager, hooks=hooks).reconcile(
        ["e1", "e2", "e3", "e4", "e5"], [], FAST
    )

    assert batches == [["e1", "e2"], ["e3", "e4"], ["e5"]]
    assert manager.max_active == 2
    events = manager.events
    for earlier, later in ((["e1", "e2"], "e3"), (["e3", "e4"], "e5")):
        last_end = max(events.index(("end", ext)) for ext in earlier)
        assert events.index(("start", later)) > last_end
    assert summary.installed == 5


@pytest.mark.asyncio
async def test_always_failing_item_is_attempted_max_retries_plus_one() -> None:
    manager = FakeExtensionManager(fail={"bad.ext": -1})
    config = ReconcileConfig(max_concurrent=2, max_retries=3, retry_delay_ms=0)

    summary = await ExtensionReconciler(manager).reconcile(["bad.ext", "good.ext"], [], config)

    assert manager.calls.count("bad.ext") == 4
    assert summary.failed == 1
    assert summary.installed == 1
    failure = summary.failures[0]
    assert failure.extension_id == "bad.ext"
    assert (failure.publisher, failure.name) == ("bad", "ext")
    assert failure.attempts == 4
    assert "exit code 1" in failure.error


@pytest.mark.asyncio
async def test_retry_waits_then_succeeds() -> None:
    manager = FakeExtensionManager(fail={"flaky.ext": 1})
    delays: list[float] = []
    retries: list[tuple[str, int]] = []

    async def fake_sleep(seconds: float) -> None:
        delays.append(seconds)

    reconciler = ExtensionReconciler(
        manager,
        sleep=fake_sleep,
        hooks=ReconcileHooks(retry=lambda ext, attempt, error: retries.append((ext, attempt))),
    )
    result = await reconciler.install_one(
        "flaky.ext", ReconcileConfig(max_retries=1, retry_delay_ms=2000)
    )

    assert result.success and result.verified
    assert result.attempts == 2
    assert delays == [2.0]
    assert retries == [("flaky.ext", 1)]


@pytest.mark.asyncio
async def test_zero_retries_means_single_attempt() -> None:
    manager = FakeExtensionManager(fail={"bad.ext": -1})

    result = await ExtensionReconciler(manager).install_one(
        "bad.ext", ReconcileConfig(max_retries=0, retry_delay_ms=0)
    )

    assert manager.calls == ["bad.ext"]
    assert result.attempts == 1
    assert not result.success


@pytest.mark.asyncio
async def test_success_without_listing_is_not_verified() -> None:
    manager = FakeExtensionManager(unverified=["ghost.ext"])

    summary = await ExtensionReconciler(manager).reconcile(["ghost.ext"], [], FAST)

    assert manager.calls == ["ghost.ext"]
    assert summary.installed == 0
    assert summary.failed == 1
    assert summary.failures[0].error == NOT_VERIFIED_REASON
    assert summary.failures[0].attempts == 1


@pytest.mark.asyncio
async def test_verification_query_failure_counts_as_not_verified() -> None:
    manager = FakeExtensionManager(list_error=True)

    result = await ExtensionReconciler(manager).install_one("pub.ext", FAST)

    assert not result.success
    assert not result.verified
    assert result.error is not None and result.error.startswith(NOT_VERIFIED_REASON)


@pytest.mark.asyncio
async def test_process_exception_is_a_retryable_failure() -> None:
    class Exploding(FakeExtensionManager):
        async def install_extension(self, extension_id: str, *, timeout: float) -> ProcessResult:
            self.calls.append(extension_id)
            raise OSError("spawn failed")

    manager = Exploding()
    result = await ExtensionReconciler(manager).install_one("pub.ext", FAST)

    assert manager.calls == ["pub.ext", "pub.ext"]
    assert result.attempts == 2
    assert result.error == "OSError: spawn failed"


@pytest.mark.asyncio
async def test_timeout_is_passed_in_seconds() -> None:
    manager = FakeExtensionManager()
    config = ReconcileConfig(install_timeout_ms=45_000, retry_delay_ms=0)

    await ExtensionReconciler(manager).reconcile(["a.b"], [], config)

    assert manager.timeouts == [45.0]


@pytest.mark.asyncio
async def test_second_run_is_idempotent() -> None:
    manager = FakeExtensionManager(installed=["b"])
    reconciler = ExtensionReconciler(manager)
    desired = ["a", "b", "c"]

    first = await reconciler.reconcile(desired, ["b"], FAST)
    after_first = await manager.list_extensions()
    calls_after_first = list(manager.calls)

    second = await reconciler.reconcile(desired, after_first, FAST)

    assert first.installed == 2
    assert diff_extensions(desired, after_first).to_install == []
    assert manager.calls == calls_after_first
    assert (second.installed, second.failed, second.skipped) == (0, 0, 3)


@pytest.mark.asyncio
async def test_dry_run_plans_without_installing() -> None:
    manager = FakeExtensionManager(installed=["b"])

    summary = await ExtensionReconciler(manager).reconcile(["a", "b", "c"], ["b"], FAST, dry_run=True)

    assert manager.calls == []
    assert summary.planned == ("a", "c")
    assert summary.skipped == 1
    assert summary.installed == 0


@pytest.mark.asyncio
async def test_item_done_hook_sees_every_result() -> None:
    manager = FakeExtensionManager(fail={"x.bad": -1})
    seen: list[tuple[str, bool]] = []
    hooks = ReconcileHooks(item_done=lambda result: seen.append((result.extension_id, result.success)))

    await ExtensionReconciler(manager, hooks=hooks).reconcile(["x.ok", "x.bad"], [], FAST)

    assert sorted(seen) == [("x.bad", False), ("x.ok", True)]
