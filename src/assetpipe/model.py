# model.py
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Tuple, Union

if TYPE_CHECKING:
    from .context import BuildContext


@dataclass(frozen=True)
class Transform:
    """A single leaf of a step tree: one named transform invocation."""
    name: str
    fn: Callable[["BuildContext"], None]


@dataclass(frozen=True)
class Series:
    """Steps run one after another; a failure stops the series."""
    steps: Tuple["Step", ...]


@dataclass(frozen=True)
class Parallel:
    """Steps dispatched together; the group settles when every member settles."""
    steps: Tuple["Step", ...]


@dataclass(frozen=True)
class Ref:
    """Reference to another registered pipeline, resolved at run time."""
    name: str


Step = Union[Transform, Series, Parallel, Ref]


@dataclass(frozen=True)
class Pipeline:
    """
    A named, invokable unit of work.

    Registered once at process start and never mutated afterwards.
    """
    name: str
    root: Step
    description: str = ""


def iter_refs(step: Step):
    """Yield the names of every pipeline referenced inside a step tree."""
    if isinstance(step, Ref):
        yield step.name
    elif isinstance(step, (Series, Parallel)):
        for s in step.steps:
            yield from iter_refs(s)


def iter_transforms(step: Step):
    if isinstance(step, Transform):
        yield step
    elif isinstance(step, (Series, Parallel)):
        for s in step.steps:
            yield from iter_transforms(s)
