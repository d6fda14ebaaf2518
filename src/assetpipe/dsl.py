# dsl.py
from __future__ import annotations

import functools
from typing import Any, Callable, Dict, List, Optional, Union

from .model import Parallel, Pipeline, Ref, Series, Step, Transform, iter_refs


# ---------------------------------------------------------------------
# Step helpers
# ---------------------------------------------------------------------

StepLike = Union[Step, str]


def transform(name: str, fn: Callable[..., None], *args: Any, **kwargs: Any) -> Transform:
    """
    Create a leaf step.

    Extra args are bound after the context, so the scheduler only ever calls fn(ctx):
        transform("clean-dist", clean, "dist")  # -> clean(ctx, "dist")
    """
    if not (args or kwargs):
        return Transform(name=name, fn=fn)

    @functools.wraps(fn)
    def bound(ctx: Any) -> None:
        fn(ctx, *args, **kwargs)

    return Transform(name=name, fn=bound)


def _coerce(step: StepLike) -> Step:
    # a bare string refers to another registered pipeline (gulp.series('build', ...))
    if isinstance(step, str):
        return Ref(step)
    if not isinstance(step, (Transform, Series, Parallel, Ref)):
        raise TypeError(f"Not a step: {step!r}")
    return step


def series(*steps: StepLike) -> Series:
    if not steps:
        raise ValueError("series() must have at least one step")
    return Series(tuple(_coerce(s) for s in steps))


def parallel(*steps: StepLike) -> Parallel:
    if not steps:
        raise ValueError("parallel() must have at least one step")
    return Parallel(tuple(_coerce(s) for s in steps))


def ref(name: str) -> Ref:
    return Ref(name)


# ---------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------

class Registry:
    """Name -> Pipeline mapping. Pipelines are immutable once registered."""

    def __init__(self):
        self._pipelines: Dict[str, Pipeline] = {}

    def register(self, name: str, step: StepLike, description: str = "") -> Pipeline:
        if name in self._pipelines:
            raise ValueError(f"Duplicate pipeline name: {name}")
        pipeline = Pipeline(name=name, root=_coerce(step), description=description)
        self._pipelines[name] = pipeline
        return pipeline

    def get(self, name: str) -> Pipeline:
        try:
            return self._pipelines[name]
        except KeyError:
            raise KeyError(f"Unknown pipeline: {name}. Known pipelines: {sorted(self._pipelines)}") from None

    def __contains__(self, name: str) -> bool:
        return name in self._pipelines

    def names(self) -> List[str]:
        return list(self._pipelines)

    def validate(self) -> None:
        """Reject refs to unknown pipelines and ref cycles."""
        for p in self._pipelines.values():
            for r in iter_refs(p.root):
                if r not in self._pipelines:
                    raise ValueError(
                        f"Pipeline '{p.name}' references missing pipeline '{r}'. "
                        f"Known pipelines: {sorted(self._pipelines)}"
                    )

        visiting: set[str] = set()
        done: set[str] = set()

        def visit(name: str, trail: List[str]) -> None:
            if name in done:
                return
            if name in visiting:
                raise ValueError(f"Pipeline references form a cycle: {' -> '.join(trail + [name])}")
            visiting.add(name)
            for r in iter_refs(self._pipelines[name].root):
                visit(r, trail + [name])
            visiting.discard(name)
            done.add(name)

        for name in self._pipelines:
            visit(name, [])


def registry(*pipelines: tuple) -> Registry:
    """
    Convenience: registry(("build", series(...)), ("lint", lint_step, "Run eslint"))
    """
    reg = Registry()
    for entry in pipelines:
        reg.register(*entry)
    return reg
