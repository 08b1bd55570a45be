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

"""Unit tests for the wakeup rule."""

from issue_queue.isa import OperationKind
from issue_queue.slot import EMPTY_SLOT, Broadcast, Slot, rob_bitmap
from issue_queue.wakeup import wake_slot, wakeup


def waiting_slot(src1_tag: int = 5, src2_tag: int = 6, **kwargs) -> Slot:
    return Slot(
        occupied=True,
        operation=OperationKind.ADD,
        recognized=True,
        src1_tag=src1_tag,
        src2_tag=src2_tag,
        **kwargs,
    )


def test_broadcast_wakes_matching_source() -> None:
    """A matching tag marks the operand ready and captures the value."""
    slot = wake_slot(waiting_slot(), Broadcast(tag=5, value=0x1234))
    assert slot.src1_ready and slot.src1_value == 0x1234
    assert not slot.src2_ready


def test_broadcast_wakes_both_sources_with_same_tag() -> None:
    """Both operands waiting on the same register wake together."""
    slot = wake_slot(waiting_slot(7, 7), Broadcast(tag=7, value=9))
    assert slot.is_ready()
    assert (slot.src1_value, slot.src2_value) == (9, 9)


def test_broadcast_is_multicast() -> None:
    """Every waiting slot with the tag wakes in the same tick."""
    slots = (waiting_slot(5, 1), EMPTY_SLOT, waiting_slot(2, 5), waiting_slot(3, 4))
    woken = wakeup(slots, Broadcast(tag=5, value=0xBEEF))
    assert sorted(woken) == [0, 2]
    assert woken[0].src1_value == 0xBEEF
    assert woken[2].src2_value == 0xBEEF


def test_ready_operand_is_not_overwritten() -> None:
    """A duplicate broadcast is idempotent: captured values are kept."""
    slot = waiting_slot(src1_ready=True, src1_value=1)
    assert wake_slot(slot, Broadcast(tag=5, value=2)) is slot


def test_empty_slots_are_ignored() -> None:
    """Unoccupied slots never wake, even if stale tags match."""
    stale = Slot(occupied=False, src1_tag=5, src2_tag=5)
    assert wakeup((stale,), Broadcast(tag=5, value=1)) == {}


def test_no_broadcast_is_a_no_op() -> None:
    """Ticks without a write-back change nothing."""
    assert wakeup((waiting_slot(),), None) == {}


def test_wakeup_does_not_mutate_snapshot() -> None:
    """wakeup() returns replacement slots instead of mutating."""
    slot = waiting_slot()
    slots = (slot,)
    woken = wakeup(slots, Broadcast(tag=6, value=3))
    assert not slots[0].src2_ready
    assert woken[0].src2_ready


def test_rob_ready_wakes_waiting_source() -> None:
    """A resolved register in the ROB bitmap wakes the operand, keeping its value."""
    slot = wake_slot(waiting_slot(src1_value=0x77), None, rob_bitmap(5))
    assert slot.src1_ready and slot.src1_value == 0x77
    assert not slot.src2_ready


def test_broadcast_value_preferred_over_rob_ready() -> None:
    """Both paths match: the broadcast value is captured."""
    slot = wake_slot(waiting_slot(src1_value=0x77), Broadcast(5, 0x88), rob_bitmap(5, 6))
    assert slot.src1_value == 0x88
    assert slot.src2_ready


def test_rob_ready_wakes_many_slots() -> None:
    """The ROB path also wakes every matching slot in one tick."""
    slots = (waiting_slot(5, 1), waiting_slot(2, 3), waiting_slot(4, 5))
    woken = wakeup(slots, None, rob_bitmap(5))
    assert sorted(woken) == [0, 2]
