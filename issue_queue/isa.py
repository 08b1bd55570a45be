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

"""Operation classification for the RV32I subset the issue queue tracks.

Classifier
==========

The decoder hands the queue three raw fields per instruction: opcode,
funct3 and funct7. This module maps them to an OperationKind. Combinations
outside the supported subset are not an error: they classify as
UNCLASSIFIED, and the Classification record carries an explicit
``recognized`` flag so the allocator can apply a policy to them.

Supported Operations:
    R-type:  ADD, XOR          (funct7 must be 0x00)
    I-type:  ADDI, ORI         (funct7 bits belong to the immediate)
             SRAI              (funct7 must be 0x20)
    U-type:  LUI               (funct3/funct7 belong to the immediate)
    Loads:   LB, LW            (memory unit)
    Stores:  SB, SW            (memory unit)

Example:
    >>> classify(Opcode.ALU_REG, Funct3.ADD_SUB, Funct7.BASE).operation
    <OperationKind.ADD: 1>
    >>> classify(Opcode.ALU_REG, Funct3.ADD_SUB, Funct7.ALT).recognized  # SUB
    False
"""

from dataclasses import dataclass
from enum import IntEnum


class Opcode(IntEnum):
    """RISC-V major opcodes used by the supported subset."""

    LOAD = 0x03
    ALU_IMM = 0x13
    STORE = 0x23
    ALU_REG = 0x33
    LUI = 0x37


class Funct3(IntEnum):
    """3-bit function codes."""

    # ALU operations
    ADD_SUB = 0x0
    XOR = 0x4
    SRL_SRA = 0x5
    OR = 0x6

    # Load/Store widths
    BYTE = 0x0
    WORD = 0x2


class Funct7(IntEnum):
    """7-bit function codes."""

    BASE = 0x00
    ALT = 0x20  # SUB, SRA, SRAI


class OperationKind(IntEnum):
    """Operations an issue queue slot can hold."""

    UNCLASSIFIED = 0
    ADD = 1
    ADDI = 2
    LUI = 3
    ORI = 4
    XOR = 5
    SRAI = 6
    LB = 7
    LW = 8
    SB = 9
    SW = 10


MEMORY_OPERATIONS = frozenset(
    {OperationKind.LB, OperationKind.LW, OperationKind.SB, OperationKind.SW}
)

# (opcode, funct3, funct7) -> operation; funct7 None means "don't care".
_DECODE_TABLE: dict[tuple[int, int, int | None], OperationKind] = {
    (Opcode.ALU_REG, Funct3.ADD_SUB, Funct7.BASE): OperationKind.ADD,
    (Opcode.ALU_REG, Funct3.XOR, Funct7.BASE): OperationKind.XOR,
    (Opcode.ALU_IMM, Funct3.ADD_SUB, None): OperationKind.ADDI,
    (Opcode.ALU_IMM, Funct3.OR, None): OperationKind.ORI,
    (Opcode.ALU_IMM, Funct3.SRL_SRA, Funct7.ALT): OperationKind.SRAI,
    (Opcode.LOAD, Funct3.BYTE, None): OperationKind.LB,
    (Opcode.LOAD, Funct3.WORD, None): OperationKind.LW,
    (Opcode.STORE, Funct3.BYTE, None): OperationKind.SB,
    (Opcode.STORE, Funct3.WORD, None): OperationKind.SW,
}

# Canonical field encodings, used to build stimulus from an OperationKind.
_ENCODINGS: dict[OperationKind, tuple[int, int, int]] = {
    OperationKind.ADD: (Opcode.ALU_REG, Funct3.ADD_SUB, Funct7.BASE),
    OperationKind.XOR: (Opcode.ALU_REG, Funct3.XOR, Funct7.BASE),
    OperationKind.ADDI: (Opcode.ALU_IMM, Funct3.ADD_SUB, Funct7.BASE),
    OperationKind.ORI: (Opcode.ALU_IMM, Funct3.OR, Funct7.BASE),
    OperationKind.SRAI: (Opcode.ALU_IMM, Funct3.SRL_SRA, Funct7.ALT),
    OperationKind.LUI: (Opcode.LUI, 0, 0),
    OperationKind.LB: (Opcode.LOAD, Funct3.BYTE, Funct7.BASE),
    OperationKind.LW: (Opcode.LOAD, Funct3.WORD, Funct7.BASE),
    OperationKind.SB: (Opcode.STORE, Funct3.BYTE, Funct7.BASE),
    OperationKind.SW: (Opcode.STORE, Funct3.WORD, Funct7.BASE),
}

# Encodings that look plausible but fall outside the supported subset.
UNCLASSIFIED_ENCODINGS: tuple[tuple[int, int, int], ...] = (
    (Opcode.ALU_REG, Funct3.ADD_SUB, Funct7.ALT),  # SUB
    (Opcode.ALU_IMM, Funct3.SRL_SRA, Funct7.BASE),  # SRLI
    (Opcode.ALU_REG, Funct3.OR, Funct7.BASE),  # OR
    (Opcode.LOAD, 0x1, Funct7.BASE),  # LH
    (0x63, 0x0, Funct7.BASE),  # BEQ
    (0x6F, 0x0, Funct7.BASE),  # JAL
)


@dataclass(frozen=True)
class Classification:
    """Result of classifying one instruction's op fields.

    ``recognized`` is False exactly when ``operation`` is UNCLASSIFIED.
    """

    operation: OperationKind

    @property
    def recognized(self) -> bool:
        """True when the fields named a supported operation."""
        return self.operation is not OperationKind.UNCLASSIFIED


UNCLASSIFIED = Classification(OperationKind.UNCLASSIFIED)


def classify(opcode: int, funct3: int, funct7: int) -> Classification:
    """Map raw decoder fields to a Classification.

    Args:
        opcode: 7-bit major opcode
        funct3: 3-bit function code
        funct7: 7-bit function code

    Returns:
        Classification of the instruction; UNCLASSIFIED for any
        combination outside the supported subset.
    """
    opcode &= 0x7F
    funct3 &= 0x7
    funct7 &= 0x7F
    if opcode == Opcode.LUI:
        return Classification(OperationKind.LUI)
    kind = _DECODE_TABLE.get((opcode, funct3, funct7))
    if kind is None:
        kind = _DECODE_TABLE.get((opcode, funct3, None))
    if kind is None:
        return UNCLASSIFIED
    return Classification(kind)


def encoding_of(kind: OperationKind) -> tuple[int, int, int]:
    """Return canonical (opcode, funct3, funct7) fields for an operation."""
    if kind is OperationKind.UNCLASSIFIED:
        return UNCLASSIFIED_ENCODINGS[0]
    return _ENCODINGS[kind]


def is_memory_operation(kind: OperationKind) -> bool:
    """Return whether an operation executes on the memory unit."""
    return kind in MEMORY_OPERATIONS
