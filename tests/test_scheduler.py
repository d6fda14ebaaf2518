import threading
import time

import pytest

from assetpipe.dsl import Registry, parallel, registry, series, transform
from assetpipe.errors import PipelineFailed
from assetpipe.scheduler import Scheduler


class Recorder:
    def __init__(self):
        self.events = []
        self._lock = threading.Lock()

    def record(self, event):
        with self._lock:
            self.events.append(event)

    def step(self, name, *, delay=0.0, fail=False):
        def fn(ctx):
            self.record(("start", name))
            if delay:
                time.sleep(delay)
            if fail:
                raise RuntimeError(f"{name} broke")
            self.record(("end", name))

        return transform(name, fn)


def test_series_runs_in_declaration_order(make_ctx):
    rec = Recorder()
    reg = registry(("p", series(rec.step("a", delay=0.02), rec.step("b"), rec.step("c"))))

    results = Scheduler(reg, make_ctx()).run("p")

    assert rec.events == [
        ("start", "a"), ("end", "a"),
        ("start", "b"), ("end", "b"),
        ("start", "c"), ("end", "c"),
    ]
    assert results == {"p/a": "ok", "p/b": "ok", "p/c": "ok"}


def test_parallel_members_are_all_dispatched_before_any_completes(make_ctx):
    barrier = threading.Barrier(3, timeout=5)
    started = []

    def member(name):
        def fn(ctx):
            started.append(name)
            # every member must be running for the barrier to release
            barrier.wait()

        return transform(name, fn)

    reg = registry(("p", parallel(member("x"), member("y"), member("z"))))
    results = Scheduler(reg, make_ctx()).run("p")

    assert sorted(started) == ["x", "y", "z"]
    assert set(results.values()) == {"ok"}


def test_parallel_group_settles_before_next_step(make_ctx):
    rec = Recorder()
    reg = registry(
        ("p", series(parallel(rec.step("slow", delay=0.05), rec.step("fast")), rec.step("after")))
    )

    Scheduler(reg, make_ctx()).run("p")

    assert rec.events.index(("start", "after")) > rec.events.index(("end", "slow"))


def test_failure_stops_the_series(make_ctx):
    rec = Recorder()
    reg = registry(("p", series(rec.step("a"), rec.step("b", fail=True), rec.step("c"))))

    with pytest.raises(PipelineFailed) as exc:
        Scheduler(reg, make_ctx()).run("p")

    assert ("start", "c") not in rec.events
    err = exc.value
    assert err.pipeline == "p"
    assert err.error.transform == "b"
    assert "b broke" in err.error.message
    assert err.results == {"p/a": "ok", "p/b": "failed", "p/c": "skipped"}


def test_parallel_failure_waits_for_siblings(make_ctx):
    rec = Recorder()
    reg = registry(
        ("p", series(parallel(rec.step("bad", fail=True), rec.step("slow", delay=0.05)), rec.step("next")))
    )

    with pytest.raises(PipelineFailed) as exc:
        Scheduler(reg, make_ctx()).run("p")

    # sibling was not cancelled, the following step never started
    assert ("end", "slow") in rec.events
    assert ("start", "next") not in rec.events
    assert exc.value.error.transform == "bad"


def test_refs_run_nested_pipelines(make_ctx):
    rec = Recorder()
    reg = Registry()
    reg.register("inner", series(rec.step("i1"), rec.step("i2")))
    reg.register("outer", series(rec.step("o1"), "inner", rec.step("o2")))

    results = Scheduler(reg, make_ctx()).run("outer")

    assert [e[1] for e in rec.events if e[0] == "start"] == ["o1", "i1", "i2", "o2"]
    assert results["inner/i1"] == "ok"
    assert results["outer/o2"] == "ok"


def test_nested_failure_is_attributed_to_the_inner_transform(make_ctx):
    rec = Recorder()
    reg = Registry()
    reg.register("inner", rec.step("boom", fail=True))
    reg.register("outer", series("inner", rec.step("later")))

    with pytest.raises(PipelineFailed) as exc:
        Scheduler(reg, make_ctx()).run("outer")

    assert exc.value.pipeline == "outer"
    assert exc.value.error.pipeline == "inner"
    assert exc.value.results["outer/later"] == "skipped"


def test_reinvocation_of_a_running_pipeline_is_serialized(make_ctx):
    active = []
    overlaps = []

    def fn(ctx):
        active.append(1)
        if len(active) > 1:
            overlaps.append(True)
        time.sleep(0.05)
        active.pop()

    scheduler = Scheduler(registry(("p", transform("t", fn))), make_ctx())
    threads = [threading.Thread(target=scheduler.run, args=("p",)) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    assert overlaps == []


def test_transform_binds_extra_arguments_after_context(make_ctx):
    seen = []

    def fn(ctx, path, *, flag):
        seen.append((ctx.config.dist_dir, path, flag))

    ctx = make_ctx()
    Scheduler(registry(("p", transform("t", fn, "x", flag=True))), ctx).run("p")

    assert seen == [(ctx.config.dist_dir, "x", True)]


def test_registry_rejects_missing_refs_and_cycles():
    reg = Registry()
    reg.register("a", series("missing"))
    with pytest.raises(ValueError, match="missing"):
        reg.validate()

    cyclic = Registry()
    cyclic.register("a", series("b"))
    cyclic.register("b", series("a"))
    with pytest.raises(ValueError, match="cycle"):
        cyclic.validate()


def test_registry_rejects_duplicates_and_empty_groups():
    reg = Registry()
    reg.register("a", transform("t", lambda ctx: None))
    with pytest.raises(ValueError):
        reg.register("a", transform("t", lambda ctx: None))
    with pytest.raises(ValueError):
        series()
    with pytest.raises(ValueError):
        parallel()
