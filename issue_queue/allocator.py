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

"""Allocator (dispatch) rule of the issue queue.

Admits at most one instruction per tick into the lowest-index free slot of
the previous tick's snapshot. Operands whose register is already resolved in
the ROB-ready bitmap are ready immediately; the rest wait for wakeup. The
source values read at rename are stored either way, since a later wakeup
through the ROB-ready bitmap carries no value of its own.

Functional-unit assignment:
    Loads and stores always go to the memory unit. Everything else rotates
    over the ALU units through a RoundRobinCursor that only ever indexes the
    configured ALU subset, so the memory unit can never be handed an ALU
    operation by wrap-around.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .config import IssueQueueConfig, UnclassifiedPolicy
from .isa import is_memory_operation
from .slot import DispatchRequest, Slot, bit_is_set

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoundRobinCursor:
    """Position in the ALU rotation; persists across ticks."""

    position: int = 0

    def unit(self, alu_units: Sequence[int]) -> int:
        """Return the ALU the next ALU-class instruction is assigned to."""
        return alu_units[self.position % len(alu_units)]

    def advance(self, alu_units: Sequence[int]) -> "RoundRobinCursor":
        """Return the cursor after one ALU-class allocation."""
        return RoundRobinCursor((self.position + 1) % len(alu_units))


@dataclass(frozen=True)
class Allocation:
    """Outcome of the allocator for one tick.

    Attributes:
        slot_index: Slot written this tick, or None
        slot: New contents of that slot, or None
        next_cursor: Round-robin cursor to commit
        queue_full: No slot was free in the snapshot
        rejected: The pending instruction was refused as unclassified
    """

    slot_index: int | None
    slot: Slot | None
    next_cursor: RoundRobinCursor
    queue_full: bool = False
    rejected: bool = False


def find_free_slot(slots: Sequence[Slot]) -> int | None:
    """Find lowest-index free slot (priority encoder)."""
    for i, slot in enumerate(slots):
        if not slot.occupied:
            return i
    return None


def allocate(
    slots: Sequence[Slot],
    request: DispatchRequest | None,
    rob_ready: int,
    cursor: RoundRobinCursor,
    config: IssueQueueConfig,
) -> Allocation:
    """Compute this tick's allocation from the previous snapshot.

    Args:
        slots: Previous tick's committed slots
        request: Pending instruction, or None if nothing is presented
        rob_ready: ROB-ready bitmap (bit i set = register i resolved)
        cursor: Committed round-robin cursor
        config: Queue configuration

    Returns:
        Allocation describing the slot to write (if any) and the new cursor.
    """
    free_index = find_free_slot(slots)
    queue_full = free_index is None

    if request is None:
        return Allocation(None, None, cursor, queue_full=queue_full)

    classification = request.classify()
    if (
        not classification.recognized
        and config.unclassified_policy is UnclassifiedPolicy.REJECT
    ):
        logger.debug(
            f"rejecting unclassified instruction opcode={request.opcode:#04x} "
            f"funct3={request.funct3:#x} funct7={request.funct7:#04x}"
        )
        return Allocation(None, None, cursor, queue_full=queue_full, rejected=True)

    if free_index is None:
        logger.debug("queue full, dispatch must be retried")
        return Allocation(None, None, cursor, queue_full=True)

    operation = classification.operation
    if is_memory_operation(operation):
        assigned_fu = config.memory_unit
        next_cursor = cursor
    else:
        assigned_fu = cursor.unit(config.alu_units)
        next_cursor = cursor.advance(config.alu_units)

    src1_ready = bit_is_set(rob_ready, request.src1_tag)
    src2_ready = bit_is_set(rob_ready, request.src2_tag)
    slot = Slot(
        occupied=True,
        operation=operation,
        recognized=classification.recognized,
        dest_tag=request.dest_tag,
        src1_tag=request.src1_tag,
        src1_ready=src1_ready,
        src1_value=request.src1_value,
        src2_tag=request.src2_tag,
        src2_ready=src2_ready,
        src2_value=request.src2_value,
        immediate=request.immediate,
        assigned_fu=assigned_fu,
    )
    logger.debug(
        f"allocate {operation.name} -> slot {free_index} fu {assigned_fu} "
        f"(src1 ready={src1_ready}, src2 ready={src2_ready})"
    )
    return Allocation(free_index, slot, next_cursor)
