from .dsl import Registry, parallel, ref, registry, series, transform
from .scheduler import Scheduler
from .model import Parallel, Pipeline, Ref, Series, Transform
from .channel import Broadcaster
from .watcher import Watcher, bind
from .context import BuildContext
from .config import Config, load_config

__all__ = [
    "transform", "series", "parallel", "ref", "registry", "Registry", "Scheduler",
    "Transform", "Series", "Parallel", "Ref", "Pipeline",
    "Broadcaster", "Watcher", "bind", "BuildContext", "Config", "load_config",
]
