# src/signalflow/contracts/stages.py
"""Stage declarations and DAG run results.

A Stage is declared once per pipeline definition and is immutable after
validation. Orchestration hints (timeout_ms, max_retries, group, tags,
critical) are carried as metadata only: the executor snapshots them into
StageMeta and never acts on them. Deadlines belong to stage handlers.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from signalflow.contracts.enums import StageKind, StageStatus
from signalflow.contracts.errors import ConfigurationError, StageErrorRecord

# Key under which the initial payload is kept in intermediate_payloads.
INITIAL_PAYLOAD_KEY = "__initial__"

# Accepted spellings of the dependency list in declarative stage configs.
_DEPENDENCY_KEYS = ("depends_on", "dependsOn", "dependencies")


@dataclass(frozen=True, slots=True)
class Stage:
    """One unit of work in a pipeline definition."""

    id: str
    kind: StageKind = StageKind.INTERNAL
    depends_on: tuple[str, ...] = ()
    label: str | None = None
    plugin_path: str | None = None
    description: str | None = None
    category: str | None = None
    group: str | None = None
    tags: tuple[str, ...] = ()
    timeout_ms: int | None = None
    max_retries: int | None = None
    critical: bool | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise ConfigurationError(f"Stage id must be a non-empty string, got {self.id!r}")
        if not isinstance(self.kind, StageKind):
            try:
                object.__setattr__(self, "kind", StageKind(self.kind))
            except ValueError:
                raise ConfigurationError(
                    f"Stage '{self.id}' has unknown kind '{self.kind}'. Expected one of: {', '.join(k.value for k in StageKind)}"
                ) from None
        # Lists from YAML/JSON become tuples so the stage stays hashable
        object.__setattr__(self, "depends_on", tuple(self.depends_on))
        object.__setattr__(self, "tags", tuple(self.tags))

    @property
    def display_name(self) -> str:
        return self.label or self.id

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Stage:
        """Build a Stage from a declarative mapping (YAML/JSON).

        Accepts ``depends_on``, ``dependsOn`` or ``dependencies`` for the
        dependency list, and ``plugin_path``/``pluginPath`` for the module.
        """
        if "id" not in data:
            raise ConfigurationError(f"Stage config missing required field 'id': {dict(data)!r}")

        present = [key for key in _DEPENDENCY_KEYS if key in data]
        if len(present) > 1:
            raise ConfigurationError(f"Stage '{data['id']}' declares dependencies under more than one key: {present}")
        depends_on = data[present[0]] if present else None

        return cls(
            id=data["id"],
            kind=data.get("kind", StageKind.INTERNAL),
            depends_on=tuple(depends_on or ()),
            label=data.get("label"),
            plugin_path=data.get("plugin_path", data.get("pluginPath")),
            description=data.get("description"),
            category=data.get("category"),
            group=data.get("group"),
            tags=tuple(data.get("tags") or ()),
            timeout_ms=data.get("timeout_ms", data.get("timeoutMs")),
            max_retries=data.get("max_retries", data.get("maxRetries")),
            critical=data.get("critical"),
        )


@dataclass(frozen=True, slots=True)
class StageMeta:
    """Execution record for one stage that was actually started."""

    stage_id: str
    kind: StageKind
    status: StageStatus
    depends_on: tuple[str, ...]
    duration_ms: float
    started_at: datetime
    ended_at: datetime
    label: str | None = None
    category: str | None = None
    group: str | None = None
    tags: tuple[str, ...] = ()
    timeout_ms: int | None = None
    max_retries: int | None = None
    critical: bool | None = None
    error: StageErrorRecord | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage_id": self.stage_id,
            "kind": self.kind.value,
            "status": self.status.value,
            "depends_on": list(self.depends_on),
            "duration_ms": self.duration_ms,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat(),
            "label": self.label,
            "category": self.category,
            "group": self.group,
            "tags": list(self.tags),
            "timeout_ms": self.timeout_ms,
            "max_retries": self.max_retries,
            "critical": self.critical,
            "error": dict(self.error) if self.error is not None else None,
        }


@dataclass
class PipelineContext:
    """Shared, read-mostly context handed to every stage handler.

    Handlers must not use the context to pass data between siblings: there
    is no ordering guarantee among concurrently-ready stages.
    """

    is_demo: bool = False
    include_stage_summaries: bool = False
    env: Mapping[str, str] = field(default_factory=dict)
    extras: dict[str, Any] = field(default_factory=dict)


@dataclass
class PipelineRunResult:
    """Result of one DAG run.

    payload is the single sink's output, or a mapping of sink id to output
    when the graph has several sinks.
    """

    payload: Any
    stage_meta: list[StageMeta]
    intermediate_payloads: dict[str, Any]

    def meta_for(self, stage_id: str) -> StageMeta:
        for meta in self.stage_meta:
            if meta.stage_id == stage_id:
                return meta
        raise KeyError(stage_id)
