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

"""Exceptions raised by the issue queue model.

Queue-level conditions (full queue, nothing issuable, unrecognized
instruction) are never exceptions: they are reported as signals on the tick
outputs. Exceptions are reserved for misuse of the model itself.
"""


class IssueQueueError(Exception):
    """Base class for all issue queue model errors."""


class ConfigurationError(IssueQueueError, ValueError):
    """Raised when an IssueQueueConfig is internally inconsistent."""


class SignalRangeError(IssueQueueError, ValueError):
    """Raised when an input signal does not fit its declared width."""


class InvariantViolation(AssertionError):
    """Raised by a monitor when a per-tick property does not hold."""

    def __init__(self, monitor: str, cycle: int, message: str) -> None:
        """Build the violation message from monitor name and cycle."""
        super().__init__(f"{monitor} at cycle {cycle}: {message}")
        self.monitor = monitor
        self.cycle = cycle
