# src/signalflow/engine/__init__.py
"""Stage execution engine: handlers, DAG executor, clock."""

from signalflow.engine.clock import DEFAULT_CLOCK, Clock, MockClock, SystemClock
from signalflow.engine.executor import (
    DAGExecutor,
    final_payload,
    join_input,
    run_pipeline_dag,
    run_pipeline_linear,
)
from signalflow.engine.handlers import (
    FunctionHandler,
    HandlerRegistry,
    PluginHandler,
    StageHandler,
)

__all__ = [
    "DEFAULT_CLOCK",
    "Clock",
    "DAGExecutor",
    "FunctionHandler",
    "HandlerRegistry",
    "MockClock",
    "PluginHandler",
    "StageHandler",
    "SystemClock",
    "final_payload",
    "join_input",
    "run_pipeline_dag",
    "run_pipeline_linear",
]
