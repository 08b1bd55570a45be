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

"""Pytest configuration for tests."""

import random
from typing import Any

import pytest

from issue_queue import IssueQueue, IssueQueueConfig


def pytest_configure(config: Any) -> None:
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "slow: mark test as slow running")


def pytest_addoption(parser: Any) -> None:
    """Add custom command line options for tests."""
    parser.addoption(
        "--seed",
        action="store",
        type=int,
        default=None,
        help="Random seed for soak tests (default: a fresh seed per session).",
    )


@pytest.fixture(scope="session")
def seed(request: Any) -> int:
    """Seed for randomized tests, printed for reproducibility."""
    value = request.config.getoption("--seed")
    if value is None:
        value = random.getrandbits(32)
    print(f"Random seed: {value}")
    return value


@pytest.fixture
def config() -> IssueQueueConfig:
    """Default queue configuration."""
    return IssueQueueConfig()


@pytest.fixture
def queue(config: IssueQueueConfig) -> IssueQueue:
    """Fresh, empty queue."""
    return IssueQueue(config)
