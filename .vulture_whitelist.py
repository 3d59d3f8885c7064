"""Vulture whitelist — methods called by frameworks, not direct code."""

# Pydantic validators — called by Pydantic, not our code
from decision_trace.query._models import RunQuery, StepQuery, _PageParams

_PageParams._coerce_limit
_PageParams._coerce_offset
RunQuery._coerce_step_bound
RunQuery._blank_is_unset
StepQuery._blank_is_unset

# Protocol members — implemented by stores and transports, called through the protocol
from decision_trace.store.protocol import TraceStore
from decision_trace.tracing._transport import EventTransport

TraceStore.pipeline_run_ids
EventTransport.send
