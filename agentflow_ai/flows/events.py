"""Execution trace events.

Every observable action of the flow executor is recorded as a
``FlowExecutionEvent`` and appended to an ``EventTrace``. The trace is
append-only; events are frozen once created. When a sink callback is supplied
it is invoked synchronously, once per event, in emission order, at the moment
the event is appended.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FlowEventType(str, Enum):
    flow_start = "flow-start"
    flow_complete = "flow-complete"
    flow_error = "flow-error"
    step_start = "step-start"
    step_complete = "step-complete"
    step_error = "step-error"
    variable_set = "variable-set"
    llm_call = "llm-call"
    llm_response = "llm-response"
    tool_call = "tool-call"
    tool_result = "tool-result"
    condition_evaluated = "condition-evaluated"
    loop_iteration = "loop-iteration"


class FlowExecutionEvent(BaseModel):
    """A single entry of the execution trace.

    ``variables`` is only populated on ``flow-complete`` (a snapshot of the final
    variable map). ``error`` holds the exception instance on ``*-error`` events.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    type: FlowEventType
    timestamp: datetime = Field(default_factory=_utc_now)
    step_id: Optional[str] = None
    step_type: Optional[str] = None
    data: Any = None
    variables: Optional[Dict[str, Any]] = None
    error: Optional[BaseException] = None


EventSink = Callable[[FlowExecutionEvent], None]


class EventTrace:
    """Ordered, append-only log of ``FlowExecutionEvent`` objects."""

    def __init__(self, sink: Optional[EventSink] = None) -> None:
        self._events: List[FlowExecutionEvent] = []
        self._sink = sink

    def emit(self, event_type: FlowEventType, **fields: Any) -> FlowExecutionEvent:
        event = FlowExecutionEvent(type=event_type, **fields)
        self._events.append(event)
        if self._sink is not None:
            self._sink(event)
        return event

    @property
    def events(self) -> List[FlowExecutionEvent]:
        return list(self._events)

    def count(self, event_type: FlowEventType) -> int:
        return sum(1 for event in self._events if event.type == event_type)

    def types(self) -> List[FlowEventType]:
        return [event.type for event in self._events]

    def __len__(self) -> int:
        return len(self._events)
