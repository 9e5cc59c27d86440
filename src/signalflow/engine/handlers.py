# src/signalflow/engine/handlers.py
"""Stage handlers: one invoke(payload, context) capability, two backends.

- FunctionHandler: in-process callable registered under a stage id
  (stage kind ``internal``)
- PluginHandler: object exposing ``run`` (usually a module), either
  pre-registered under a stage id or imported from the stage's
  ``plugin_path`` (stage kind ``plugin``)

The backend is chosen once, by HandlerRegistry.resolve(), before any stage
runs. The executor only ever sees StageHandler.
"""

from __future__ import annotations

import importlib
import inspect
import logging
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from signalflow.contracts import ConfigurationError, PipelineContext, StageKind
from signalflow.core.dag import StageGraph

logger = logging.getLogger(__name__)

# Attribute looked up on plugin modules when plugin_path names no attribute
DEFAULT_PLUGIN_ATTR = "run"


class StageHandler(Protocol):
    """Anything the executor can invoke for a stage.

    A handler may raise to abort the whole run; the exception reaches the
    caller unmodified.
    """

    def invoke(self, payload: Any, context: PipelineContext) -> Any: ...


def _accepts_context(func: Callable[..., Any]) -> bool:
    """True when func takes a second positional argument (or *args)."""
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        # Builtins without introspectable signatures get payload only
        return False
    positional = 0
    for param in signature.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return True
        if param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            positional += 1
    return positional >= 2


class FunctionHandler:
    """In-process handler wrapping ``func(payload)`` or ``func(payload, context)``."""

    def __init__(self, stage_id: str, func: Callable[..., Any]) -> None:
        if not callable(func):
            raise ConfigurationError(f"Handler for stage '{stage_id}' is not callable: {func!r}")
        self.stage_id = stage_id
        self._func = func
        self._with_context = _accepts_context(func)

    def invoke(self, payload: Any, context: PipelineContext) -> Any:
        if self._with_context:
            return self._func(payload, context)
        return self._func(payload)

    def __repr__(self) -> str:
        return f"FunctionHandler({self.stage_id!r}, {self._func!r})"


class PluginHandler:
    """Handler backed by a plugin's ``run`` callable."""

    def __init__(self, stage_id: str, run: Callable[..., Any], *, source: str) -> None:
        self.stage_id = stage_id
        self.source = source
        self._run = run
        self._with_context = _accepts_context(run)

    @classmethod
    def from_object(cls, stage_id: str, plugin: Any, *, source: str = "registry") -> PluginHandler:
        run = getattr(plugin, DEFAULT_PLUGIN_ATTR, None)
        if not callable(run):
            raise ConfigurationError(f"Plugin for stage '{stage_id}' does not expose a callable '{DEFAULT_PLUGIN_ATTR}'")
        return cls(stage_id, run, source=source)

    @classmethod
    def from_path(cls, stage_id: str, plugin_path: str) -> PluginHandler:
        """Import ``package.module`` or ``package.module:attr``.

        With no attr, the module's ``run`` is used. An attr naming an object
        that itself exposes ``run`` (a plugin instance) is unwrapped.
        """
        module_name, _, attr = plugin_path.partition(":")
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise ConfigurationError(f"Stage '{stage_id}': cannot import plugin module '{module_name}': {e}") from e

        attr = attr or DEFAULT_PLUGIN_ATTR
        try:
            target = getattr(module, attr)
        except AttributeError:
            raise ConfigurationError(f"Stage '{stage_id}': plugin module '{module_name}' has no attribute '{attr}'") from None

        if not inspect.isroutine(target) and not inspect.isclass(target) and callable(getattr(target, DEFAULT_PLUGIN_ATTR, None)):
            target = getattr(target, DEFAULT_PLUGIN_ATTR)
        if not callable(target):
            raise ConfigurationError(f"Stage '{stage_id}': plugin '{plugin_path}' is not callable")
        logger.debug("Loaded plugin %s for stage %s", plugin_path, stage_id)
        return cls(stage_id, target, source=plugin_path)

    def invoke(self, payload: Any, context: PipelineContext) -> Any:
        if self._with_context:
            return self._run(payload, context)
        return self._run(payload)

    def __repr__(self) -> str:
        return f"PluginHandler({self.stage_id!r}, source={self.source!r})"


class HandlerRegistry:
    """Explicitly constructed mapping of stage id -> handler.

    Lifetime is the owning process or test case; there is no module-level
    default instance.

    Usage:
        registry = HandlerRegistry({"normalize": normalize})
        registry.register_plugin("sentiment", sentiment_module)
        handlers = registry.resolve(graph)
    """

    def __init__(
        self,
        handlers: Mapping[str, Callable[..., Any] | StageHandler] | None = None,
        plugins: Mapping[str, Any] | None = None,
    ) -> None:
        self._handlers: dict[str, StageHandler] = {}
        self._plugins: dict[str, Any] = {}
        for stage_id, handler in (handlers or {}).items():
            self.register(stage_id, handler)
        for stage_id, plugin in (plugins or {}).items():
            self.register_plugin(stage_id, plugin)

    def register(self, stage_id: str, handler: Callable[..., Any] | StageHandler, *, replace: bool = False) -> None:
        """Register the in-process handler for an ``internal`` stage.

        Plain callables are wrapped in FunctionHandler.
        """
        if stage_id in self._handlers and not replace:
            raise ConfigurationError(f"Handler already registered for stage '{stage_id}'")
        if callable(getattr(handler, "invoke", None)):
            self._handlers[stage_id] = handler  # type: ignore[assignment]  # has invoke()
        else:
            self._handlers[stage_id] = FunctionHandler(stage_id, handler)

    def register_plugin(self, stage_id: str, plugin: Any, *, replace: bool = False) -> None:
        """Pre-register a loaded plugin for a ``plugin`` stage.

        Takes precedence over the stage's plugin_path.
        """
        if stage_id in self._plugins and not replace:
            raise ConfigurationError(f"Plugin already registered for stage '{stage_id}'")
        self._plugins[stage_id] = plugin

    def __contains__(self, stage_id: object) -> bool:
        return stage_id in self._handlers or stage_id in self._plugins

    def resolve(self, graph: StageGraph) -> dict[str, StageHandler]:
        """Select a handler for every stage, before anything executes.

        Raises:
            ConfigurationError: internal stage without a handler, or plugin
                stage whose plugin cannot be found or imported.
        """
        resolved: dict[str, StageHandler] = {}
        for stage in graph.stages:
            if stage.kind is StageKind.INTERNAL:
                if stage.id not in self._handlers:
                    raise ConfigurationError(f"Internal stage '{stage.id}' has no registered handler")
                resolved[stage.id] = self._handlers[stage.id]
            elif stage.id in self._plugins:
                resolved[stage.id] = PluginHandler.from_object(stage.id, self._plugins[stage.id])
            elif stage.plugin_path:
                resolved[stage.id] = PluginHandler.from_path(stage.id, stage.plugin_path)
            else:
                raise ConfigurationError(f"Plugin stage '{stage.id}' missing plugin_path and not in registry")
        return resolved
