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

"""Cycle-level model of the issue queue.

Issue Queue
===========

The queue is a synchronous state machine advanced one tick at a time.
Each tick, three rules read the same committed snapshot:

    - allocate(): writes at most one free slot (allocator.py)
    - wakeup():   marks waiting operands ready from the broadcast or the
                  ROB-ready bitmap (wakeup.py)
    - select():   grants up to ISSUE_WIDTH ready slots (selector.py)

Their results are merged into one new IssueQueueState, which then replaces
the committed one. No rule sees another rule's output from the same tick:
a slot freed by select() only becomes allocatable on the next tick, and an
instruction allocated this tick does not observe this tick's broadcast.

Merge Order:
    The three rules touch disjoint slots except for wakeup and select, which
    may both touch a granted slot. The grant wins: the slot is freed.

Reset:
    A tick with ``reset`` asserted ignores every other input and commits an
    empty queue with the round-robin cursor, cycle counter and statistics
    cleared.

Example:
    >>> queue = IssueQueue()
    >>> req = DispatchRequest.for_operation(OperationKind.ADD, dest_tag=4,
    ...                                     src1_tag=5, src1_value=1,
    ...                                     src2_tag=2, src2_value=1)
    >>> out = queue.tick(TickInputs(dispatch=req, rob_ready=rob_bitmap(5, 2)))
    >>> out.allocated_slot
    0
    >>> out = queue.tick(TickInputs(fu_ready=fu_bitmap(0)))
    >>> out.channels[0].payload.dest_tag
    4
"""

import dataclasses
import logging
from dataclasses import dataclass

from .allocator import Allocation, RoundRobinCursor, allocate
from .config import IssueQueueConfig
from .errors import SignalRangeError
from .selector import Selection, select
from .slot import (
    EMPTY_SLOT,
    IDLE_CHANNEL,
    IssueChannel,
    Slot,
    StallReason,
    TickInputs,
    TickOutputs,
    check_bitmap,
)
from .wakeup import wakeup

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssueQueueStats:
    """Transient counters, cleared by reset."""

    allocations: int = 0
    issues: int = 0
    queue_full_stalls: int = 0
    no_progress_stalls: int = 0
    rejected: int = 0
    wakeups: int = 0

    def report(self, cycles: int) -> str:
        """Generate a one-block human-readable summary."""
        ipc = self.issues / cycles if cycles else 0.0
        return (
            f"cycles={cycles} allocations={self.allocations} issues={self.issues} "
            f"ipc={ipc:.3f}\n"
            f"queue_full_stalls={self.queue_full_stalls} "
            f"no_progress_stalls={self.no_progress_stalls} "
            f"rejected={self.rejected} wakeups={self.wakeups}"
        )


@dataclass(frozen=True)
class IssueQueueState:
    """Committed state between ticks."""

    slots: tuple[Slot, ...]
    cursor: RoundRobinCursor = RoundRobinCursor()
    cycle: int = 0
    stats: IssueQueueStats = IssueQueueStats()

    @classmethod
    def empty(cls, config: IssueQueueConfig) -> "IssueQueueState":
        """Return the post-reset state for ``config``."""
        return cls(slots=(EMPTY_SLOT,) * config.num_slots)

    @property
    def occupancy(self) -> int:
        """Return number of occupied slots."""
        return sum(1 for s in self.slots if s.occupied)


def _merge_slots(
    state: IssueQueueState,
    allocation: Allocation,
    woken: dict[int, Slot],
    selection: Selection,
) -> tuple[Slot, ...]:
    slots = list(state.slots)
    for index, slot in woken.items():
        slots[index] = slot
    for index in selection.freed_slots:
        slots[index] = EMPTY_SLOT
    if allocation.slot_index is not None:
        slots[allocation.slot_index] = allocation.slot
    return tuple(slots)


def next_state(
    state: IssueQueueState, inputs: TickInputs, config: IssueQueueConfig
) -> tuple[IssueQueueState, TickOutputs]:
    """Compute the next committed state and this tick's outputs.

    Pure function: ``state`` is not modified.

    Args:
        state: Previous tick's committed state
        inputs: Signals sampled at this tick boundary
        config: Queue configuration

    Returns:
        Tuple of (new state, tick outputs).
    """
    idle = (IDLE_CHANNEL,) * config.issue_width
    if inputs.reset:
        return IssueQueueState.empty(config), TickOutputs(channels=idle)

    check_bitmap(inputs.fu_ready, config.fu_ready_mask, "fu_ready")
    if len(state.slots) != config.num_slots:
        raise SignalRangeError(
            f"state has {len(state.slots)} slots, config expects {config.num_slots}"
        )

    allocation = allocate(
        state.slots, inputs.dispatch, inputs.rob_ready, state.cursor, config
    )
    woken = wakeup(state.slots, inputs.broadcast, inputs.rob_ready)
    selection = select(state.slots, inputs.fu_ready, config)

    stall_reason = StallReason.NONE
    if allocation.queue_full:
        stall_reason |= StallReason.QUEUE_FULL
    if selection.no_progress:
        stall_reason |= StallReason.NO_PROGRESS

    channels = tuple(IssueChannel(True, g) for g in selection.grants)
    channels += idle[len(channels) :]

    stats = state.stats
    stats = dataclasses.replace(
        stats,
        allocations=stats.allocations + (allocation.slot_index is not None),
        issues=stats.issues + len(selection.grants),
        queue_full_stalls=stats.queue_full_stalls + allocation.queue_full,
        no_progress_stalls=stats.no_progress_stalls + selection.no_progress,
        rejected=stats.rejected + allocation.rejected,
        wakeups=stats.wakeups + len(woken),
    )

    new_state = IssueQueueState(
        slots=_merge_slots(state, allocation, woken, selection),
        cursor=allocation.next_cursor,
        cycle=state.cycle + 1,
        stats=stats,
    )
    outputs = TickOutputs(
        channels=channels,
        stall_reason=stall_reason,
        allocated_slot=allocation.slot_index,
        dispatch_rejected=allocation.rejected,
    )
    return new_state, outputs


class IssueQueue:
    """Issue queue owning its committed state.

    All interaction goes through tick(); the slot array is exposed only as
    an immutable tuple.
    """

    def __init__(self, config: IssueQueueConfig | None = None) -> None:
        """Initialize an empty queue with the given configuration."""
        self.config = config or IssueQueueConfig()
        self._state = IssueQueueState.empty(self.config)

    def tick(self, inputs: TickInputs | None = None) -> TickOutputs:
        """Advance one clock tick and commit the resulting state."""
        inputs = inputs or TickInputs()
        new_state, outputs = next_state(self._state, inputs, self.config)
        if inputs.reset:
            logger.info(f"reset at cycle {self._state.cycle}")
        self._state = new_state
        return outputs

    def reset(self) -> TickOutputs:
        """Apply a synchronous reset (one tick with reset asserted)."""
        return self.tick(TickInputs(reset=True))

    def snapshot(self) -> IssueQueueState:
        """Return the committed state (immutable)."""
        return self._state

    @property
    def slots(self) -> tuple[Slot, ...]:
        """Committed slot array."""
        return self._state.slots

    @property
    def cursor(self) -> RoundRobinCursor:
        """Committed round-robin cursor."""
        return self._state.cursor

    @property
    def cycle(self) -> int:
        """Ticks since the last reset."""
        return self._state.cycle

    @property
    def stats(self) -> IssueQueueStats:
        """Counters since the last reset."""
        return self._state.stats

    @property
    def occupancy(self) -> int:
        """Return number of occupied slots."""
        return self._state.occupancy

    def is_full(self) -> bool:
        """Return whether all slots are occupied."""
        return self.occupancy == self.config.num_slots

    def is_empty(self) -> bool:
        """Return whether no slots are occupied."""
        return self.occupancy == 0
