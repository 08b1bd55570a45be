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

"""Shared helpers for building stimulus in tests."""

from issue_queue import DispatchRequest, OperationKind, TickInputs, fu_bitmap, rob_bitmap
from issue_queue.config import ALU_UNITS, FU_MEM

ALL_UNITS_READY = fu_bitmap(*ALU_UNITS, FU_MEM)
NO_UNITS_READY = 0


def make_request(
    kind: OperationKind = OperationKind.ADD,
    dest_tag: int = 1,
    src1_tag: int = 2,
    src1_value: int = 0,
    src2_tag: int = 3,
    src2_value: int = 0,
    immediate: int = 0,
) -> DispatchRequest:
    """Build a dispatch request with test-friendly defaults."""
    return DispatchRequest.for_operation(
        kind,
        dest_tag=dest_tag,
        src1_tag=src1_tag,
        src1_value=src1_value,
        src2_tag=src2_tag,
        src2_value=src2_value,
        immediate=immediate,
    )


def dispatch_ready(
    kind: OperationKind = OperationKind.ADD,
    dest_tag: int = 1,
    src1_tag: int = 2,
    src2_tag: int = 3,
    fu_ready: int = NO_UNITS_READY,
) -> TickInputs:
    """Tick inputs dispatching an instruction whose sources are both resolved."""
    return TickInputs(
        dispatch=make_request(kind, dest_tag, src1_tag, 0x11, src2_tag, 0x22),
        rob_ready=rob_bitmap(src1_tag, src2_tag),
        fu_ready=fu_ready,
    )


def dispatch_waiting(
    kind: OperationKind = OperationKind.ADD,
    dest_tag: int = 1,
    src1_tag: int = 2,
    src2_tag: int = 3,
    fu_ready: int = NO_UNITS_READY,
) -> TickInputs:
    """Tick inputs dispatching an instruction with both sources unresolved."""
    return TickInputs(
        dispatch=make_request(kind, dest_tag, src1_tag, 0, src2_tag, 0),
        rob_ready=0,
        fu_ready=fu_ready,
    )
