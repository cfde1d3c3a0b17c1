"""Registry construction for the ``serve`` command.

A setup hook is a ``module:function`` reference; the function receives the
registry and registers whatever the host process wants to expose.
"""

from __future__ import annotations

import importlib
from typing import Any, Callable, Iterable

from loguru import logger

from dyfunc.cli.demo import register_demo_functions
from dyfunc.config.schema import Config
from dyfunc.registry.registry import FunctionRegistry

SetupHook = Callable[[FunctionRegistry], Any]


def load_setup_hook(reference: str) -> SetupHook:
    """Resolve ``package.module:attr`` (``attr`` may be dotted) to a callable."""
    module_name, sep, attr_path = reference.partition(":")
    if not sep or not module_name or not attr_path:
        raise ValueError(f"setup hook must look like 'module:function', got {reference!r}")
    target: Any = importlib.import_module(module_name)
    for part in attr_path.split("."):
        target = getattr(target, part)
    if not callable(target):
        raise TypeError(f"setup hook {reference!r} is not callable")
    return target


def build_registry(config: Config, setup_hooks: Iterable[str] = ()) -> FunctionRegistry:
    """Create a registry with the configured credentials and run the setup hooks."""
    hooks = [load_setup_hook(ref) for ref in setup_hooks]
    registry = FunctionRegistry()
    registry.set_basic_auth(config.auth.username, config.auth.password)
    if not hooks:
        register_demo_functions(registry)
        logger.info("No setup hooks given; registered demo functions")
    for hook in hooks:
        hook(registry)
    logger.info("Registry ready with {} functions: {}", len(registry), ", ".join(registry.names))
    return registry
