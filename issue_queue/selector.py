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

"""Selector (issue arbitration) rule of the issue queue.

Arbitration Policy
==================

Slots are scanned in ascending index order. A slot is a candidate when it
is occupied, both operands are ready, its assigned unit reports ready, and
no earlier slot in the same scan was granted that unit. Candidates fill the
issue channels in discovery order until every channel is used.

Slot index is a stable tie-break, not program order: slots are reused in
place, so an older instruction sitting at a high index can be passed over
in favour of a younger one at a lower index.

Because there are more channels than some configurations have units, the
per-unit "taken" set is what limits a tick to one grant per unit.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from .config import IssueQueueConfig
from .slot import IssuePayload, Slot, bit_is_set

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Selection:
    """Outcome of the selector for one tick.

    Attributes:
        grants: Payloads in channel order (first grant on channel 0)
        no_progress: Slots were occupied but none could be granted
    """

    grants: tuple[IssuePayload, ...] = field(default_factory=tuple)
    no_progress: bool = False

    @property
    def freed_slots(self) -> list[int]:
        """Indices of the slots released by this tick's grants."""
        return [grant.slot_index for grant in self.grants]


def is_candidate(slot: Slot, fu_ready: int, taken_units: set[int]) -> bool:
    """Return whether a slot can be granted given the scan so far."""
    return (
        slot.is_ready()
        and bit_is_set(fu_ready, slot.assigned_fu)
        and slot.assigned_fu not in taken_units
    )


def select(
    slots: Sequence[Slot], fu_ready: int, config: IssueQueueConfig
) -> Selection:
    """Pick up to ``config.issue_width`` unit-distinct ready slots.

    Args:
        slots: Previous tick's committed slots
        fu_ready: Functional-unit readiness bitmap
        config: Queue configuration

    Returns:
        Selection with grants in discovery order.
    """
    grants: list[IssuePayload] = []
    taken_units: set[int] = set()
    any_occupied = False

    for i, slot in enumerate(slots):
        if not slot.occupied:
            continue
        any_occupied = True
        if len(grants) == config.issue_width:
            break
        if is_candidate(slot, fu_ready, taken_units):
            taken_units.add(slot.assigned_fu)
            grants.append(IssuePayload.from_slot(i, slot))

    no_progress = any_occupied and not grants
    if grants:
        logger.debug(
            "grant "
            + ", ".join(f"slot {g.slot_index}->fu {g.assigned_fu}" for g in grants)
        )
    elif no_progress:
        logger.debug(f"no issuable slot (fu_ready={fu_ready:#x})")
    return Selection(tuple(grants), no_progress)
