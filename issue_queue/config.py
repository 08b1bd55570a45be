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

"""Central configuration for the issue queue model.

Configuration
=============

This module contains the constants that size the issue queue and its
surrounding interfaces, plus the runtime configuration record passed to
IssueQueue. Keeping them in one place makes it easy to model a different
core (deeper queue, more ALUs) without touching the update rules.

Organization:
    - Queue Geometry (slot count, issue width)
    - Register Tag Configuration (architectural register count, masks)
    - Data Word Configuration (32-bit masks)
    - Functional Unit Configuration (unit ids, ALU round-robin domain)
    - Soak Test Defaults
    - Runtime Configuration (IssueQueueConfig)

Usage:
    >>> from issue_queue.config import NUM_SLOTS, MASK32
    >>> value = (a + b) & MASK32

    >>> from issue_queue.config import IssueQueueConfig, UnclassifiedPolicy
    >>> cfg = IssueQueueConfig(num_slots=8, unclassified_policy=UnclassifiedPolicy.REJECT)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Final

from .errors import ConfigurationError

# ============================================================================
# Queue Geometry
# ============================================================================

NUM_SLOTS: Final[int] = 16
"""Number of reservation-station slots in the queue."""

ISSUE_WIDTH: Final[int] = 3
"""Number of issue channels (maximum grants per tick)."""

# ============================================================================
# Register Tag Configuration
# ============================================================================

NUM_REGISTERS: Final[int] = 128
"""Number of architectural registers addressable by a tag (0-127)."""

REGISTER_TAG_WIDTH: Final[int] = 7
"""Width of a register tag in bits."""

REGISTER_TAG_MASK: Final[int] = (1 << REGISTER_TAG_WIDTH) - 1
"""Mask for a register tag (0x7F)."""

ROB_READY_MASK: Final[int] = (1 << NUM_REGISTERS) - 1
"""Mask for the ROB-ready bitmap (one bit per architectural register)."""

# ============================================================================
# Data Word Configuration
# ============================================================================

WORD_WIDTH_BITS: Final[int] = 32
"""Width of operand values and immediates in bits."""

MASK32: Final[int] = (1 << WORD_WIDTH_BITS) - 1
"""32-bit mask (0xFFFF_FFFF)."""

# ============================================================================
# Functional Unit Configuration
# ============================================================================

FU_ALU0: Final[int] = 0
"""First general-purpose (ALU-class) functional unit."""

FU_ALU1: Final[int] = 1
"""Second general-purpose (ALU-class) functional unit."""

FU_MEM: Final[int] = 2
"""Dedicated memory unit (loads and stores)."""

NUM_FUS: Final[int] = 3
"""Total number of functional units."""

ALU_UNITS: Final[tuple[int, ...]] = (FU_ALU0, FU_ALU1)
"""Units eligible for round-robin ALU assignment, in rotation order."""

FU_READY_MASK: Final[int] = (1 << NUM_FUS) - 1
"""Mask for the functional-unit readiness bitmap."""

# ============================================================================
# Soak Test Defaults
# ============================================================================

DEFAULT_SOAK_CYCLES: Final[int] = 20000
"""Default number of ticks for a random soak run."""

DEFAULT_DISPATCH_PROBABILITY: Final[float] = 0.7
"""Probability that a soak tick presents a new instruction."""

DEFAULT_BROADCAST_PROBABILITY: Final[float] = 0.6
"""Probability that a soak tick carries a result broadcast."""

DEFAULT_ROB_READY_PROBABILITY: Final[float] = 0.5
"""Probability that a given register is marked ready in the ROB bitmap."""

DEFAULT_FU_READY_PROBABILITY: Final[float] = 0.8
"""Probability that a given functional unit accepts work this tick."""

DEFAULT_UNCLASSIFIED_PROBABILITY: Final[float] = 0.02
"""Probability that a generated instruction uses an unrecognized encoding."""


# ============================================================================
# Runtime Configuration
# ============================================================================


class UnclassifiedPolicy(Enum):
    """What the allocator does with an instruction the classifier rejects."""

    PASS_THROUGH = "pass_through"
    """Allocate it like any other instruction, tagged as unrecognized."""

    REJECT = "reject"
    """Refuse it: no slot is written and the tick reports a rejection."""


@dataclass(frozen=True)
class IssueQueueConfig:
    """Runtime parameters of one issue queue instance.

    The defaults model the reference core: sixteen slots, three issue
    channels, two ALUs sharing round-robin assignment and one memory unit.
    Unrecognized instructions are passed through to preserve the reference
    behaviour; switch unclassified_policy to REJECT for a hardened queue.
    """

    num_slots: int = NUM_SLOTS
    issue_width: int = ISSUE_WIDTH
    alu_units: tuple[int, ...] = ALU_UNITS
    memory_unit: int = FU_MEM
    num_fus: int = NUM_FUS
    unclassified_policy: UnclassifiedPolicy = UnclassifiedPolicy.PASS_THROUGH

    def __post_init__(self) -> None:
        """Reject configurations the update rules cannot honour."""
        if self.num_slots < 1:
            raise ConfigurationError(f"num_slots must be positive, got {self.num_slots}")
        if self.issue_width < 1:
            raise ConfigurationError(
                f"issue_width must be positive, got {self.issue_width}"
            )
        if not self.alu_units:
            raise ConfigurationError("alu_units must name at least one unit")
        if len(set(self.alu_units)) != len(self.alu_units):
            raise ConfigurationError(f"alu_units has duplicates: {self.alu_units}")
        units = (*self.alu_units, self.memory_unit)
        for unit in units:
            if not 0 <= unit < self.num_fus:
                raise ConfigurationError(
                    f"functional unit {unit} outside 0..{self.num_fus - 1}"
                )
        if self.memory_unit in self.alu_units:
            raise ConfigurationError(
                f"memory unit {self.memory_unit} cannot also be an ALU"
            )

    @property
    def fu_ready_mask(self) -> int:
        """Mask covering one readiness bit per functional unit."""
        return (1 << self.num_fus) - 1
