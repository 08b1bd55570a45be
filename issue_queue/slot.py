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

"""Records exchanged with and stored in the issue queue.

Slots are immutable: every update rule builds replacement Slot objects with
dataclasses.replace(), so a tick can never observe a half-updated snapshot.
The per-tick input and output records live here too, alongside the range
checks applied to raw signal values.
"""

from dataclasses import dataclass, field
from enum import IntFlag

from .config import MASK32, NUM_FUS, NUM_REGISTERS, ROB_READY_MASK
from .errors import SignalRangeError
from .isa import Classification, OperationKind, classify, encoding_of


def check_tag(tag: int, name: str = "tag") -> int:
    """Return tag unchanged, or raise SignalRangeError if it is not 0..127."""
    if not 0 <= tag < NUM_REGISTERS:
        raise SignalRangeError(f"{name} {tag} outside 0..{NUM_REGISTERS - 1}")
    return tag


def check_bitmap(bitmap: int, mask: int, name: str) -> int:
    """Return bitmap unchanged, or raise SignalRangeError if it overflows mask."""
    if bitmap < 0 or bitmap & ~mask:
        raise SignalRangeError(f"{name} {bitmap:#x} does not fit mask {mask:#x}")
    return bitmap


def bit_is_set(bitmap: int, index: int) -> bool:
    """Return whether bit ``index`` of ``bitmap`` is set."""
    return bool((bitmap >> index) & 1)


def rob_bitmap(*ready_tags: int) -> int:
    """Build a ROB-ready bitmap with the given register tags set."""
    bitmap = 0
    for tag in ready_tags:
        bitmap |= 1 << check_tag(tag)
    return bitmap & ROB_READY_MASK


def fu_bitmap(*ready_units: int, num_fus: int = NUM_FUS) -> int:
    """Build a functional-unit readiness bitmap with the given units set."""
    bitmap = 0
    for unit in ready_units:
        if not 0 <= unit < num_fus:
            raise SignalRangeError(f"functional unit {unit} outside 0..{num_fus - 1}")
        bitmap |= 1 << unit
    return bitmap


@dataclass(frozen=True)
class Slot:
    """One reservation-station entry.

    An unoccupied slot carries no meaningful fields; it is never woken or
    selected. ``recognized`` tags instructions that classified as
    UNCLASSIFIED but were still allocated.
    """

    occupied: bool = False
    operation: OperationKind = OperationKind.UNCLASSIFIED
    recognized: bool = False
    dest_tag: int = 0

    src1_tag: int = 0
    src1_ready: bool = False
    src1_value: int = 0

    src2_tag: int = 0
    src2_ready: bool = False
    src2_value: int = 0

    immediate: int = 0
    assigned_fu: int = 0

    def is_ready(self) -> bool:
        """Check if both operands are available."""
        return self.occupied and self.src1_ready and self.src2_ready

    def waits_on(self, tag: int) -> bool:
        """Return whether a not-yet-ready operand of this slot is ``tag``."""
        if not self.occupied:
            return False
        return (not self.src1_ready and self.src1_tag == tag) or (
            not self.src2_ready and self.src2_tag == tag
        )


EMPTY_SLOT = Slot()


@dataclass(frozen=True)
class DispatchRequest:
    """A decoded, renamed instruction presented to the allocator.

    Values are truncated to 32 bits like the hardware ports; tags are
    range-checked because an out-of-range tag means the caller is broken.
    """

    opcode: int
    funct3: int
    funct7: int
    dest_tag: int = 0
    src1_tag: int = 0
    src1_value: int = 0
    src2_tag: int = 0
    src2_value: int = 0
    immediate: int = 0

    def __post_init__(self) -> None:
        """Validate tags and mask data words."""
        check_tag(self.dest_tag, "dest_tag")
        check_tag(self.src1_tag, "src1_tag")
        check_tag(self.src2_tag, "src2_tag")
        object.__setattr__(self, "src1_value", self.src1_value & MASK32)
        object.__setattr__(self, "src2_value", self.src2_value & MASK32)
        object.__setattr__(self, "immediate", self.immediate & MASK32)

    @classmethod
    def for_operation(
        cls,
        kind: OperationKind,
        dest_tag: int = 0,
        src1_tag: int = 0,
        src1_value: int = 0,
        src2_tag: int = 0,
        src2_value: int = 0,
        immediate: int = 0,
    ) -> "DispatchRequest":
        """Build a request from an operation using its canonical encoding."""
        opcode, funct3, funct7 = encoding_of(kind)
        return cls(
            opcode=opcode,
            funct3=funct3,
            funct7=funct7,
            dest_tag=dest_tag,
            src1_tag=src1_tag,
            src1_value=src1_value,
            src2_tag=src2_tag,
            src2_value=src2_value,
            immediate=immediate,
        )

    def classify(self) -> Classification:
        """Classify this request's op fields."""
        return classify(self.opcode, self.funct3, self.funct7)


@dataclass(frozen=True)
class Broadcast:
    """Result write-back observed by wakeup (one per tick at most)."""

    tag: int
    value: int

    def __post_init__(self) -> None:
        """Validate the tag and mask the value."""
        check_tag(self.tag, "broadcast tag")
        object.__setattr__(self, "value", self.value & MASK32)


@dataclass(frozen=True)
class IssuePayload:
    """Contents of one issue channel when it carries a grant."""

    slot_index: int
    operation: OperationKind
    dest_tag: int
    src1_tag: int
    src2_tag: int
    src1_value: int
    src2_value: int
    immediate: int
    assigned_fu: int

    @classmethod
    def from_slot(cls, slot_index: int, slot: Slot) -> "IssuePayload":
        """Build issue payload from an entry."""
        return cls(
            slot_index=slot_index,
            operation=slot.operation,
            dest_tag=slot.dest_tag,
            src1_tag=slot.src1_tag,
            src2_tag=slot.src2_tag,
            src1_value=slot.src1_value,
            src2_value=slot.src2_value,
            immediate=slot.immediate,
            assigned_fu=slot.assigned_fu,
        )


@dataclass(frozen=True)
class IssueChannel:
    """One issue channel: a payload is present only when ``valid``."""

    valid: bool = False
    payload: IssuePayload | None = None

    def __post_init__(self) -> None:
        """Keep the valid flag and payload presence consistent."""
        if self.valid != (self.payload is not None):
            raise ValueError("IssueChannel payload must be present iff valid")


IDLE_CHANNEL = IssueChannel()


class StallReason(IntFlag):
    """Backpressure causes, reported separately per tick."""

    NONE = 0
    QUEUE_FULL = 1
    """No free slot: a pending instruction must be re-presented."""
    NO_PROGRESS = 2
    """Slots are occupied but none could be granted this tick."""


@dataclass(frozen=True)
class TickInputs:
    """Signals sampled once at a tick boundary.

    ``dispatch`` and ``broadcast`` are None on ticks without a pending
    instruction or a write-back. ``reset`` overrides everything else.
    """

    dispatch: DispatchRequest | None = None
    rob_ready: int = 0
    fu_ready: int = 0
    broadcast: Broadcast | None = None
    reset: bool = False

    def __post_init__(self) -> None:
        """Validate bitmap widths."""
        check_bitmap(self.rob_ready, ROB_READY_MASK, "rob_ready")
        if self.fu_ready < 0:
            raise SignalRangeError(f"fu_ready {self.fu_ready:#x} is negative")


@dataclass(frozen=True)
class TickOutputs:
    """Signals produced by one tick."""

    channels: tuple[IssueChannel, ...] = field(default_factory=tuple)
    stall_reason: StallReason = StallReason.NONE
    allocated_slot: int | None = None
    dispatch_rejected: bool = False

    @property
    def stall(self) -> bool:
        """Combined backpressure signal (either cause)."""
        return self.stall_reason != StallReason.NONE

    @property
    def queue_full(self) -> bool:
        """Queue-full share of the backpressure signal."""
        return bool(self.stall_reason & StallReason.QUEUE_FULL)

    @property
    def no_progress(self) -> bool:
        """No-progress share of the backpressure signal."""
        return bool(self.stall_reason & StallReason.NO_PROGRESS)

    @property
    def dispatch_accepted(self) -> bool:
        """Whether the pending instruction was written into a slot."""
        return self.allocated_slot is not None

    @property
    def grants(self) -> list[IssuePayload]:
        """Payloads of the valid channels, in channel order."""
        return [c.payload for c in self.channels if c.payload is not None]
