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

"""Wakeup rule: result-broadcast and ROB-ready snoop across all occupied slots.

An operand wakes when its tag matches this tick's broadcast, taking the
broadcast value, or when the ROB-ready bitmap reports its register resolved,
keeping the value captured at dispatch. The broadcast wins when both apply.
"""

import dataclasses
import logging
from collections.abc import Sequence

from .slot import Broadcast, Slot, bit_is_set

logger = logging.getLogger(__name__)


def wake_slot(slot: Slot, broadcast: Broadcast | None, rob_ready: int = 0) -> Slot:
    """Return ``slot`` with every operand that can wake this tick marked ready.

    Operands that are already ready are left untouched, so a repeated
    broadcast of the same tag is a no-op.
    """
    if not slot.occupied:
        return slot
    changes: dict[str, object] = {}
    for src in ("src1", "src2"):
        if getattr(slot, f"{src}_ready"):
            continue
        tag = getattr(slot, f"{src}_tag")
        if broadcast is not None and tag == broadcast.tag:
            changes[f"{src}_ready"] = True
            changes[f"{src}_value"] = broadcast.value
        elif bit_is_set(rob_ready, tag):
            changes[f"{src}_ready"] = True
    if not changes:
        return slot
    return dataclasses.replace(slot, **changes)


def wakeup(
    slots: Sequence[Slot], broadcast: Broadcast | None, rob_ready: int = 0
) -> dict[int, Slot]:
    """Wake pending sources across all slots.

    Every matching slot wakes in the same tick.

    Args:
        slots: Previous tick's committed slots
        broadcast: This tick's write-back, or None
        rob_ready: ROB-ready bitmap (bit i set = register i resolved)

    Returns:
        Mapping of slot index to updated slot, for slots that changed only.
    """
    if broadcast is None and not rob_ready:
        return {}
    woken: dict[int, Slot] = {}
    for i, slot in enumerate(slots):
        updated = wake_slot(slot, broadcast, rob_ready)
        if updated is not slot:
            woken[i] = updated
    if woken:
        source = f"broadcast tag {broadcast.tag}" if broadcast else "rob_ready"
        logger.debug(f"{source} woke slots {sorted(woken)}")
    return woken
