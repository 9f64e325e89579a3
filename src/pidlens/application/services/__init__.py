from pidlens.application.services.classifier_registry import (
    ClassifierRegistry,
    RegistryEntry,
    default_registry,
)
from pidlens.application.services.dispatcher import Dispatcher
from pidlens.application.services.entity_cache import EntityCache, PidLensRuntime, build_runtime
from pidlens.application.services.pid_resolver import PIDResolver
from pidlens.application.services.resolver_memo import ResolverMemo

__all__ = [
    "ClassifierRegistry",
    "RegistryEntry",
    "default_registry",
    "Dispatcher",
    "EntityCache",
    "PidLensRuntime",
    "build_runtime",
    "PIDResolver",
    "ResolverMemo",
]
