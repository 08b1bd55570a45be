#    Copyright 2026 Two Sigma Open Source, LLC
#
#    Licensed under the Apache License, Version 2.0 (the "License");
#    you may not use this file except in compliance with the License.
#    You may obtain a copy of the License at
#
#        http://www.apache.org/licenses/LICENSE-2.0
#
#    Unless required by applicable law or agreed to in writing, software
#    distributed under the License is distributed on an "AS IS" BASIS,
#    WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#    See the License for the specific language governing permissions and
#    limitations under the License.

"""Cycle-level model of an out-of-order core's instruction issue queue.

This package models the reservation-station array that sits between rename
and the functional units: it buffers renamed instructions, wakes operands
on result broadcasts, and each tick issues up to three ready instructions
to distinct functional units, signalling backpressure when it is full or
stuck.
"""

from ._version import __version__
from .config import IssueQueueConfig, UnclassifiedPolicy
from .errors import (
    ConfigurationError,
    InvariantViolation,
    IssueQueueError,
    SignalRangeError,
)
from .isa import Classification, OperationKind, classify
from .model import IssueQueue, IssueQueueState, IssueQueueStats, next_state
from .monitors import MonitoredIssueQueue
from .slot import (
    Broadcast,
    DispatchRequest,
    IssueChannel,
    IssuePayload,
    Slot,
    StallReason,
    TickInputs,
    TickOutputs,
    fu_bitmap,
    rob_bitmap,
)

__all__ = [
    "__version__",
    "Broadcast",
    "Classification",
    "ConfigurationError",
    "DispatchRequest",
    "InvariantViolation",
    "IssueChannel",
    "IssuePayload",
    "IssueQueue",
    "IssueQueueConfig",
    "IssueQueueError",
    "IssueQueueState",
    "IssueQueueStats",
    "MonitoredIssueQueue",
    "OperationKind",
    "SignalRangeError",
    "Slot",
    "StallReason",
    "TickInputs",
    "TickOutputs",
    "UnclassifiedPolicy",
    "classify",
    "fu_bitmap",
    "next_state",
    "rob_bitmap",
]
