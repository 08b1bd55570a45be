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

"""Per-tick invariant monitors for the issue queue model.

Monitors
========

Monitors run alongside a simulation and check every committed transition
against the properties the queue must hold, failing on the first tick that
breaks one.

How Monitors Work:
    MonitoredIssueQueue captures the committed state before a tick, advances
    the wrapped IssueQueue, and hands (before, inputs, after, outputs) to
    each monitor. A monitor returns None when the tick is fine, or an error
    string; the wrapper turns the first error into an InvariantViolation.

Monitors Provided:
    - AllocationMonitor: at most one slot goes empty->occupied per tick
    - GrantMonitor: grants are unit-distinct, bounded and free their slots
    - ReadinessMonitor: ready flags and captured values never regress
    - QueueFullMonitor: queue-full stall asserted exactly when full
    - NoProgressMonitor: no-progress stall asserted exactly when stuck
    - UnitAssignmentMonitor: memory ops on the memory unit, others on ALUs
    - ResetMonitor: a reset tick commits an empty, zeroed state
"""

import logging
from abc import ABC, abstractmethod

from .config import IssueQueueConfig
from .errors import InvariantViolation
from .isa import is_memory_operation
from .model import IssueQueue, IssueQueueState
from .slot import TickInputs, TickOutputs

logger = logging.getLogger(__name__)


class Monitor(ABC):
    """Abstract base class for per-tick property checks.

    Subclasses implement check(); ``checks_reset`` selects whether the
    monitor also sees ticks with reset asserted.
    """

    checks_reset = False

    def __init__(self, config: IssueQueueConfig, name: str = "Monitor") -> None:
        """Initialize monitor with the queue configuration.

        Args:
            config: Configuration of the monitored queue
            name: Monitor name for error messages
        """
        self.config = config
        self.name = name

    @abstractmethod
    def check(
        self,
        before: IssueQueueState,
        inputs: TickInputs,
        after: IssueQueueState,
        outputs: TickOutputs,
    ) -> str | None:
        """Check one committed transition.

        Returns:
            None if the property holds, error message string otherwise.
        """
        ...


class AllocationMonitor(Monitor):
    """At most one slot is filled per tick, and it is the reported one."""

    def __init__(self, config: IssueQueueConfig) -> None:
        super().__init__(config, "Allocation")

    def check(
        self,
        before: IssueQueueState,
        inputs: TickInputs,
        after: IssueQueueState,
        outputs: TickOutputs,
    ) -> str | None:
        filled = [
            i
            for i, (old, new) in enumerate(zip(before.slots, after.slots))
            if not old.occupied and new.occupied
        ]
        if len(filled) > 1:
            return f"{len(filled)} slots filled in one tick: {filled}"
        expected = [] if outputs.allocated_slot is None else [outputs.allocated_slot]
        if filled != expected:
            return f"filled slots {filled} but allocated_slot={outputs.allocated_slot}"
        if filled and any(not s.occupied for s in before.slots[: filled[0]]):
            return f"slot {filled[0]} filled while a lower-index slot was free"
        return None


class GrantMonitor(Monitor):
    """Grants are bounded, unit-distinct and free exactly their slots."""

    def __init__(self, config: IssueQueueConfig) -> None:
        super().__init__(config, "Grant")

    def check(
        self,
        before: IssueQueueState,
        inputs: TickInputs,
        after: IssueQueueState,
        outputs: TickOutputs,
    ) -> str | None:
        if len(outputs.channels) != self.config.issue_width:
            return f"{len(outputs.channels)} channels, expected {self.config.issue_width}"
        valid = [c.valid for c in outputs.channels]
        if valid != sorted(valid, reverse=True):
            return f"valid channels not packed from channel 0: {valid}"

        grants = outputs.grants
        units = [g.assigned_fu for g in grants]
        if len(set(units)) != len(units):
            return f"functional unit granted twice: {units}"
        for g in grants:
            if not (inputs.fu_ready >> g.assigned_fu) & 1:
                return f"slot {g.slot_index} granted to busy unit {g.assigned_fu}"
            if not before.slots[g.slot_index].is_ready():
                return f"slot {g.slot_index} granted without both operands ready"

        freed = sorted(
            i
            for i, (old, new) in enumerate(zip(before.slots, after.slots))
            if old.occupied and not new.occupied
        )
        granted = sorted(g.slot_index for g in grants)
        if freed != granted:
            return f"freed slots {freed} do not match granted slots {granted}"
        return None


class ReadinessMonitor(Monitor):
    """Operand readiness is monotonic while a slot stays occupied."""

    def __init__(self, config: IssueQueueConfig) -> None:
        super().__init__(config, "Readiness")

    def check(
        self,
        before: IssueQueueState,
        inputs: TickInputs,
        after: IssueQueueState,
        outputs: TickOutputs,
    ) -> str | None:
        for i, (old, new) in enumerate(zip(before.slots, after.slots)):
            if not (old.occupied and new.occupied):
                continue
            for src in ("src1", "src2"):
                was_ready = getattr(old, f"{src}_ready")
                if was_ready and not getattr(new, f"{src}_ready"):
                    return f"slot {i} {src} ready flag cleared"
                if was_ready and getattr(old, f"{src}_value") != getattr(
                    new, f"{src}_value"
                ):
                    return f"slot {i} {src} value changed after capture"
        return None


class QueueFullMonitor(Monitor):
    """Queue-full stall tracks a full snapshot; no allocation when full."""

    def __init__(self, config: IssueQueueConfig) -> None:
        super().__init__(config, "Queue full")

    def check(
        self,
        before: IssueQueueState,
        inputs: TickInputs,
        after: IssueQueueState,
        outputs: TickOutputs,
    ) -> str | None:
        full = before.occupancy == self.config.num_slots
        if full != outputs.queue_full:
            return f"queue_full={outputs.queue_full} with occupancy {before.occupancy}"
        if full and outputs.dispatch_accepted:
            return f"allocated slot {outputs.allocated_slot} while full"
        return None


class NoProgressMonitor(Monitor):
    """No-progress stall asserted exactly when occupied slots issue nothing."""

    def __init__(self, config: IssueQueueConfig) -> None:
        super().__init__(config, "No progress")

    def check(
        self,
        before: IssueQueueState,
        inputs: TickInputs,
        after: IssueQueueState,
        outputs: TickOutputs,
    ) -> str | None:
        expected = before.occupancy > 0 and not outputs.grants
        if expected != outputs.no_progress:
            return (
                f"no_progress={outputs.no_progress} with occupancy "
                f"{before.occupancy} and {len(outputs.grants)} grants"
            )
        if outputs.no_progress and any(c.valid for c in outputs.channels):
            return "channel valid during no-progress stall"
        return None


class UnitAssignmentMonitor(Monitor):
    """New slots get the memory unit iff they hold a load or store."""

    def __init__(self, config: IssueQueueConfig) -> None:
        super().__init__(config, "Unit assignment")

    def check(
        self,
        before: IssueQueueState,
        inputs: TickInputs,
        after: IssueQueueState,
        outputs: TickOutputs,
    ) -> str | None:
        if outputs.allocated_slot is None:
            return None
        slot = after.slots[outputs.allocated_slot]
        if is_memory_operation(slot.operation):
            if slot.assigned_fu != self.config.memory_unit:
                return f"{slot.operation.name} assigned to unit {slot.assigned_fu}"
        elif slot.assigned_fu not in self.config.alu_units:
            return f"{slot.operation.name} assigned to non-ALU unit {slot.assigned_fu}"
        return None


class ResetMonitor(Monitor):
    """A reset tick commits an empty queue with cleared counters."""

    checks_reset = True

    def __init__(self, config: IssueQueueConfig) -> None:
        super().__init__(config, "Reset")

    def check(
        self,
        before: IssueQueueState,
        inputs: TickInputs,
        after: IssueQueueState,
        outputs: TickOutputs,
    ) -> str | None:
        if not inputs.reset:
            return None
        if after != IssueQueueState.empty(self.config):
            return "state not cleared by reset"
        if outputs.stall or outputs.grants:
            return "reset tick produced stall or grants"
        return None


DEFAULT_MONITORS = (
    AllocationMonitor,
    GrantMonitor,
    ReadinessMonitor,
    QueueFullMonitor,
    NoProgressMonitor,
    UnitAssignmentMonitor,
    ResetMonitor,
)


class MonitoredIssueQueue:
    """IssueQueue wrapper that checks every tick with a set of monitors."""

    def __init__(
        self,
        queue: IssueQueue | None = None,
        monitors: list[Monitor] | None = None,
    ) -> None:
        """Wrap ``queue`` (a fresh default queue if None).

        Args:
            queue: Queue to drive
            monitors: Monitors to run; all DEFAULT_MONITORS if None
        """
        self.queue = queue or IssueQueue()
        if monitors is None:
            monitors = [m(self.queue.config) for m in DEFAULT_MONITORS]
        self.monitors = monitors
        self.ticks_checked = 0

    def tick(self, inputs: TickInputs | None = None) -> TickOutputs:
        """Advance the wrapped queue and check the transition."""
        inputs = inputs or TickInputs()
        before = self.queue.snapshot()
        outputs = self.queue.tick(inputs)
        after = self.queue.snapshot()
        for monitor in self.monitors:
            if inputs.reset and not monitor.checks_reset:
                continue
            error = monitor.check(before, inputs, after, outputs)
            if error:
                logger.error(f"{monitor.name} at cycle {before.cycle}: {error}")
                raise InvariantViolation(monitor.name, before.cycle, error)
        self.ticks_checked += 1
        return outputs

    def reset(self) -> TickOutputs:
        """Apply a synchronous reset through the monitors."""
        return self.tick(TickInputs(reset=True))
