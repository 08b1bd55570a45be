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

"""Constrained-random soak tests and CLI smoke tests."""

import pytest

from issue_queue import IssueQueue, IssueQueueConfig, OperationKind, UnclassifiedPolicy
from issue_queue.soak import main, run_seed_sweep, run_soak
from issue_queue.stimulus import StimulusGenerator


def test_stimulus_is_reproducible() -> None:
    """The same seed yields the same input sequence."""
    queue_a, queue_b = IssueQueue(), IssueQueue()
    gen_a, gen_b = StimulusGenerator(seed=7), StimulusGenerator(seed=7)
    for _ in range(50):
        inputs_a = gen_a.next_inputs(queue_a.snapshot())
        inputs_b = gen_b.next_inputs(queue_b.snapshot())
        assert inputs_a == inputs_b
        gen_a.observe(queue_a.tick(inputs_a))
        gen_b.observe(queue_b.tick(inputs_b))


def test_stimulus_retries_until_accepted() -> None:
    """A stalled instruction is re-presented unchanged."""
    queue = IssueQueue(IssueQueueConfig(num_slots=1))
    gen = StimulusGenerator(seed=3, dispatch_probability=1.0, fu_ready_probability=0.0)
    gen.observe(queue.tick(gen.next_inputs(queue.snapshot())))
    first = gen.next_inputs(queue.snapshot())
    out = queue.tick(first)
    assert out.queue_full
    gen.observe(out)
    assert gen.next_inputs(queue.snapshot()).dispatch == first.dispatch


def test_stimulus_can_emit_unclassified() -> None:
    """With probability 1 every instruction is unsupported."""
    gen = StimulusGenerator(seed=1, unclassified_probability=1.0)
    params = gen.generate_instruction()
    assert params.operation is OperationKind.UNCLASSIFIED
    assert not params.to_request().classify().recognized


def test_soak_default_config(seed: int) -> None:
    """A short random run passes every monitor."""
    result = run_soak(cycles=2000, seed=seed)
    assert result.passed, f"seed {seed}: {result.error}"
    assert result.cycles == 2000
    assert result.stats.issues > 0
    assert result.stats.allocations >= result.stats.issues


@pytest.mark.parametrize("num_slots", [1, 2])
def test_soak_small_queues(seed: int, num_slots: int) -> None:
    """Tiny queues fill up and still hold every invariant."""
    result = run_soak(cycles=1000, seed=seed, config=IssueQueueConfig(num_slots=num_slots))
    assert result.passed, f"seed {seed}: {result.error}"
    assert result.stats.queue_full_stalls > 0


def test_soak_reject_policy_with_resets(seed: int) -> None:
    """Hardened policy plus periodic reset."""
    config = IssueQueueConfig(unclassified_policy=UnclassifiedPolicy.REJECT)
    result = run_soak(cycles=2000, seed=seed, config=config, reset_interval=300)
    assert result.passed, f"seed {seed}: {result.error}"


@pytest.mark.slow
def test_soak_long(seed: int) -> None:
    """Long random run."""
    result = run_soak(cycles=50000, seed=seed)
    assert result.passed, f"seed {seed}: {result.error}"


def test_cli_single_run(capsys: pytest.CaptureFixture[str]) -> None:
    """The CLI prints statistics and exits 0 on success."""
    assert main(["--seed", "11", "--cycles", "300", "--depth", "8"]) == 0
    captured = capsys.readouterr()
    assert "seed=11" in captured.out
    assert "PASSED" in captured.out


def test_cli_rejects_bad_depth() -> None:
    """An invalid configuration is a usage error."""
    with pytest.raises(SystemExit) as excinfo:
        main(["--depth", "0"])
    assert excinfo.value.code == 2


def test_seed_sweep_applies_reset_interval() -> None:
    """Each sweep run matches a standalone run with the same reset interval."""
    config = IssueQueueConfig(num_slots=4)
    results = run_seed_sweep(2, 200, config, max_workers=1, reset_interval=25)
    assert len(results) == 2
    for result in results:
        assert result.passed, f"seed {result.seed}: {result.error}"
        expected = run_soak(200, result.seed, config, reset_interval=25)
        assert result.stats == expected.stats


def test_cli_seed_sweep(capsys: pytest.CaptureFixture[str]) -> None:
    """Sweep mode runs every seed and reports the pass count."""
    assert main(["--seed-sweep", "2", "--cycles", "50", "--max-workers", "1"]) == 0
    assert "2/2 seeds passed" in capsys.readouterr().out


def test_cli_rejects_zero_seed_sweep(capsys: pytest.CaptureFixture[str]) -> None:
    """A sweep of zero seeds is an error, not a single run."""
    assert main(["--seed-sweep", "0", "--cycles", "10", "--seed", "1"]) == 1
    out = capsys.readouterr().out
    assert "requires a positive integer" in out
    assert "PASSED" not in out
