# src/signalflow/state/registry.py
"""pluggy-backed registry of composition node plugins.

Plugins implement the ``signalflow_get_nodes`` hook to contribute node
classes. A NodeRegistry is explicitly constructed and handed to the
composer; its lifetime is the owning process or test case.

Usage (implementing a plugin):
    from signalflow.state.registry import hookimpl

    class MyPlugin:
        @hookimpl  # NOT @hookspec - that's for defining specs
        def signalflow_get_nodes(self):
            return [TechnicalIndicatorsNode]
"""

from __future__ import annotations

import logging

import pluggy

from signalflow.contracts import ConfigurationError, NodeConfig
from signalflow.engine.clock import Clock
from signalflow.state.nodes import BaseNode, Node, ProviderBackedNode
from signalflow.state.providers import ProviderRegistry

logger = logging.getLogger(__name__)

PROJECT_NAME = "signalflow"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class SignalflowNodeSpec:
    """Hook specifications for node plugins."""

    @hookspec
    def signalflow_get_nodes(self) -> list[type[BaseNode]]:  # type: ignore[empty-body]
        """Return node classes (not instances).

        Each class's ``plugin`` attribute is the name NodeConfig.plugin
        refers to.
        """


class NodeRegistry:
    """Maps plugin names to node classes and instantiates configured nodes.

    Usage:
        registry = NodeRegistry(providers=providers)
        registry.register(MyPlugin())
        node = registry.create(NodeConfig(id="ta", type="enrichment", plugin="technical-indicators", enabled=True))
    """

    def __init__(self, *, providers: ProviderRegistry | None = None, clock: Clock | None = None) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(SignalflowNodeSpec)
        self._nodes: dict[str, type[BaseNode]] = {}
        self.providers = providers or ProviderRegistry()
        self._clock = clock

    def register(self, plugin: object) -> None:
        """Register a hook implementation and collect its node classes."""
        self._pm.register(plugin)
        for node_classes in self._pm.hook.signalflow_get_nodes():
            for node_cls in node_classes:
                if self._nodes.get(node_cls.plugin) is node_cls:
                    continue
                self.register_node(node_cls)

    def register_node(self, node_cls: type[BaseNode]) -> None:
        name = getattr(node_cls, "plugin", None)
        if not isinstance(name, str) or not name:
            raise ConfigurationError(f"Node class {node_cls.__name__} has no 'plugin' name")
        if name in self._nodes and self._nodes[name] is not node_cls:
            raise ConfigurationError(
                f"Duplicate node plugin '{name}': {self._nodes[name].__name__} and {node_cls.__name__}"
            )
        self._nodes[name] = node_cls
        logger.debug("Registered node plugin %s -> %s", name, node_cls.__name__)

    def __contains__(self, plugin: object) -> bool:
        return plugin in self._nodes

    @property
    def plugin_names(self) -> list[str]:
        return sorted(self._nodes)

    def get(self, plugin: str) -> type[BaseNode]:
        if plugin not in self._nodes:
            available = ", ".join(self.plugin_names) or "none"
            raise ConfigurationError(f"Unknown node plugin '{plugin}'. Available: {available}")
        return self._nodes[plugin]

    def create(self, config: NodeConfig) -> Node:
        """Instantiate the node a config refers to."""
        node_cls = self.get(config.plugin)
        node: BaseNode
        if issubclass(node_cls, ProviderBackedNode):
            node = node_cls(
                self.providers,
                config.id,
                dependencies=config.dependencies,
                parallel=config.parallel,
                clock=self._clock,
            )
        else:
            node = node_cls(config.id, dependencies=config.dependencies, parallel=config.parallel, clock=self._clock)
        # The declared type wins: it is what the trace records
        node.type = config.type
        return node
