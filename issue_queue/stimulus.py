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

"""Constrained-random stimulus for the issue queue model.

Stimulus Generator
==================

Generates per-tick input bundles that keep the queue busy: a mix of ALU and
memory operations, a random ROB-ready bitmap, a random functional-unit
readiness bitmap and result broadcasts aimed at tags the queue is actually
waiting on (so slots eventually wake up instead of starving).

The generator behaves like a well-mannered upstream stage: an instruction
refused for lack of space is re-presented unchanged on the next tick, and
only dropped once it has been accepted or rejected as unclassified.

Example Usage:
    >>> gen = StimulusGenerator(seed=1)
    >>> queue = IssueQueue()
    >>> for _ in range(100):
    ...     outputs = queue.tick(gen.next_inputs(queue.snapshot()))
    ...     gen.observe(outputs)
"""

import random
from typing import NamedTuple

from .config import (
    DEFAULT_BROADCAST_PROBABILITY,
    DEFAULT_DISPATCH_PROBABILITY,
    DEFAULT_FU_READY_PROBABILITY,
    DEFAULT_ROB_READY_PROBABILITY,
    DEFAULT_UNCLASSIFIED_PROBABILITY,
    MASK32,
    NUM_REGISTERS,
    IssueQueueConfig,
)
from .isa import UNCLASSIFIED_ENCODINGS, OperationKind, encoding_of
from .model import IssueQueueState
from .slot import Broadcast, DispatchRequest, TickInputs, TickOutputs

SUPPORTED_OPERATIONS = tuple(
    kind for kind in OperationKind if kind is not OperationKind.UNCLASSIFIED
)


class InstructionParams(NamedTuple):
    """Parameters for a generated instruction.

    This provides named access to instruction components, making code
    more readable than positional tuple unpacking.
    """

    operation: OperationKind
    """Operation kind (UNCLASSIFIED for a deliberately unsupported encoding)."""
    fields: tuple[int, int, int]
    """Raw (opcode, funct3, funct7) presented to the classifier."""
    dest_tag: int
    """Destination register tag (0-127)."""
    src1_tag: int
    """First source register tag (0-127)."""
    src2_tag: int
    """Second source register tag (0-127)."""
    src1_value: int
    """Value of the first source if already resolved."""
    src2_value: int
    """Value of the second source if already resolved."""
    immediate: int
    """32-bit immediate."""

    def to_request(self) -> DispatchRequest:
        """Convert to the request presented to the allocator."""
        opcode, funct3, funct7 = self.fields
        return DispatchRequest(
            opcode=opcode,
            funct3=funct3,
            funct7=funct7,
            dest_tag=self.dest_tag,
            src1_tag=self.src1_tag,
            src1_value=self.src1_value,
            src2_tag=self.src2_tag,
            src2_value=self.src2_value,
            immediate=self.immediate,
        )


class StimulusGenerator:
    """Random TickInputs source with retry-on-full semantics."""

    def __init__(
        self,
        seed: int | None = None,
        config: IssueQueueConfig | None = None,
        dispatch_probability: float = DEFAULT_DISPATCH_PROBABILITY,
        broadcast_probability: float = DEFAULT_BROADCAST_PROBABILITY,
        rob_ready_probability: float = DEFAULT_ROB_READY_PROBABILITY,
        fu_ready_probability: float = DEFAULT_FU_READY_PROBABILITY,
        unclassified_probability: float = DEFAULT_UNCLASSIFIED_PROBABILITY,
    ) -> None:
        """Initialize the generator.

        Args:
            seed: Seed for the private random.Random instance
            config: Configuration of the driven queue
            dispatch_probability: Chance a tick presents a new instruction
            broadcast_probability: Chance a tick carries a broadcast
            rob_ready_probability: Chance each register reads as resolved
            fu_ready_probability: Chance each unit accepts work
            unclassified_probability: Chance an instruction is unsupported
        """
        self.rng = random.Random(seed)
        self.config = config or IssueQueueConfig()
        self.dispatch_probability = dispatch_probability
        self.broadcast_probability = broadcast_probability
        self.rob_ready_probability = rob_ready_probability
        self.fu_ready_probability = fu_ready_probability
        self.unclassified_probability = unclassified_probability
        self.pending: InstructionParams | None = None

    def generate_instruction(self) -> InstructionParams:
        """Generate one random instruction."""
        if self.rng.random() < self.unclassified_probability:
            operation = OperationKind.UNCLASSIFIED
            fields = self.rng.choice(UNCLASSIFIED_ENCODINGS)
        else:
            operation = self.rng.choice(SUPPORTED_OPERATIONS)
            fields = encoding_of(operation)
        return InstructionParams(
            operation=operation,
            fields=tuple(int(f) for f in fields),
            dest_tag=self.rng.randrange(NUM_REGISTERS),
            src1_tag=self.rng.randrange(NUM_REGISTERS),
            src2_tag=self.rng.randrange(NUM_REGISTERS),
            src1_value=self.rng.getrandbits(32),
            src2_value=self.rng.getrandbits(32),
            immediate=self.rng.getrandbits(12),
        )

    def _random_bitmap(self, width: int, probability: float) -> int:
        bitmap = 0
        for bit in range(width):
            if self.rng.random() < probability:
                bitmap |= 1 << bit
        return bitmap

    def _pick_broadcast(self, state: IssueQueueState) -> Broadcast | None:
        if self.rng.random() >= self.broadcast_probability:
            return None
        waiting = sorted(
            {
                tag
                for slot in state.slots
                if slot.occupied
                for tag in (slot.src1_tag, slot.src2_tag)
                if slot.waits_on(tag)
            }
        )
        tag = self.rng.choice(waiting) if waiting else self.rng.randrange(NUM_REGISTERS)
        return Broadcast(tag, self.rng.getrandbits(32) & MASK32)

    def next_inputs(self, state: IssueQueueState) -> TickInputs:
        """Generate the input bundle for the next tick of ``state``."""
        if self.pending is None and self.rng.random() < self.dispatch_probability:
            self.pending = self.generate_instruction()
        return TickInputs(
            dispatch=self.pending.to_request() if self.pending else None,
            rob_ready=self._random_bitmap(NUM_REGISTERS, self.rob_ready_probability),
            fu_ready=self._random_bitmap(self.config.num_fus, self.fu_ready_probability),
            broadcast=self._pick_broadcast(state),
        )

    def observe(self, outputs: TickOutputs) -> None:
        """Retire the pending instruction once the queue has consumed it."""
        if outputs.dispatch_accepted or outputs.dispatch_rejected:
            self.pending = None
