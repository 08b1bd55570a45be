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

"""Random soak runner for the issue queue model - works with pytest and standalone.

Drives a MonitoredIssueQueue with constrained-random stimulus for a number
of ticks and reports throughput and stall statistics. Any invariant
violation stops the run and fails it.
"""

import argparse
import logging
import random
import sys
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass

from .config import DEFAULT_SOAK_CYCLES, NUM_SLOTS, IssueQueueConfig, UnclassifiedPolicy
from .errors import InvariantViolation
from .model import IssueQueue, IssueQueueStats
from .monitors import MonitoredIssueQueue
from .stimulus import StimulusGenerator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SoakResult:
    """Outcome of one seeded soak run."""

    seed: int
    cycles: int
    stats: IssueQueueStats
    error: str | None = None

    @property
    def passed(self) -> bool:
        """True when every tick passed every monitor."""
        return self.error is None


def run_soak(
    cycles: int = DEFAULT_SOAK_CYCLES,
    seed: int | None = None,
    config: IssueQueueConfig | None = None,
    reset_interval: int = 0,
) -> SoakResult:
    """Run one monitored random simulation.

    Args:
        cycles: Number of ticks to simulate
        seed: Random seed (a fresh one is drawn if None)
        config: Queue configuration
        reset_interval: Assert reset every N ticks (0 = never)

    Returns:
        SoakResult with the final statistics, or the first violation.
    """
    if seed is None:
        seed = random.getrandbits(32)
    config = config or IssueQueueConfig()
    queue = MonitoredIssueQueue(IssueQueue(config))
    stimulus = StimulusGenerator(seed=seed, config=config)
    logger.info(f"soak seed={seed} cycles={cycles} slots={config.num_slots}")

    stats = IssueQueueStats()
    completed = 0
    try:
        for tick in range(cycles):
            if reset_interval and tick and tick % reset_interval == 0:
                stats = _accumulate(stats, queue.queue.stats)
                queue.reset()
                stimulus.pending = None
            else:
                outputs = queue.tick(stimulus.next_inputs(queue.queue.snapshot()))
                stimulus.observe(outputs)
            completed = tick + 1
    except InvariantViolation as e:
        return SoakResult(seed, completed, _accumulate(stats, queue.queue.stats), str(e))

    return SoakResult(seed, completed, _accumulate(stats, queue.queue.stats))


def _accumulate(total: IssueQueueStats, part: IssueQueueStats) -> IssueQueueStats:
    return IssueQueueStats(
        allocations=total.allocations + part.allocations,
        issues=total.issues + part.issues,
        queue_full_stalls=total.queue_full_stalls + part.queue_full_stalls,
        no_progress_stalls=total.no_progress_stalls + part.no_progress_stalls,
        rejected=total.rejected + part.rejected,
        wakeups=total.wakeups + part.wakeups,
    )


def run_seed_sweep(
    num_seeds: int,
    cycles: int,
    config: IssueQueueConfig,
    max_workers: int | None = None,
    reset_interval: int = 0,
) -> list[SoakResult]:
    """Run ``num_seeds`` soak runs with distinct random seeds in parallel."""
    seeds = [random.getrandbits(32) for _ in range(num_seeds)]
    results: list[SoakResult] = []
    with ProcessPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            executor.submit(run_soak, cycles, seed, config, reset_interval): seed
            for seed in seeds
        }
        for future in as_completed(futures):
            result = future.result()
            status = "PASS" if result.passed else "FAIL"
            print(f"  seed {result.seed:>10}: {status}")
            results.append(result)
    return sorted(results, key=lambda r: r.seed)


def main(argv: list[str] | None = None) -> int:
    """Run soak simulations from the command line."""
    parser = argparse.ArgumentParser(
        description="Random soak test of the issue queue model",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                          # One run with a random seed
  %(prog)s --seed 1234 --cycles 500 # Reproduce a specific run
  %(prog)s --seed-sweep 16          # 16 seeds in parallel, report pass/fail
  %(prog)s --depth 4 --reject-unclassified
""",
    )
    parser.add_argument(
        "--cycles",
        type=int,
        default=DEFAULT_SOAK_CYCLES,
        help=f"Ticks per run (default: {DEFAULT_SOAK_CYCLES})",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument(
        "--depth",
        type=int,
        default=NUM_SLOTS,
        help=f"Number of queue slots (default: {NUM_SLOTS})",
    )
    parser.add_argument(
        "--reject-unclassified",
        action="store_true",
        help="Refuse unrecognized instructions instead of allocating them",
    )
    parser.add_argument(
        "--reset-interval",
        type=int,
        default=0,
        metavar="N",
        help="Assert reset every N ticks (default: never)",
    )
    parser.add_argument(
        "--seed-sweep",
        type=int,
        default=None,
        metavar="N",
        help="Run N simulations with different random seeds in parallel",
    )
    parser.add_argument(
        "--max-workers",
        type=int,
        default=None,
        metavar="W",
        help="Maximum parallel workers for seed sweep",
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="-v for INFO, -vv for DEBUG"
    )
    args = parser.parse_args(argv)

    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    if args.cycles < 1:
        parser.error("--cycles must be positive")
    policy = (
        UnclassifiedPolicy.REJECT
        if args.reject_unclassified
        else UnclassifiedPolicy.PASS_THROUGH
    )
    try:
        config = IssueQueueConfig(num_slots=args.depth, unclassified_policy=policy)
    except ValueError as e:
        parser.error(str(e))

    if args.seed_sweep is not None:
        if args.seed_sweep < 1:
            print("Error: --seed-sweep requires a positive integer")
            return 1
        print(f"Running {args.seed_sweep} seeds x {args.cycles} cycles")
        results = run_seed_sweep(
            args.seed_sweep,
            args.cycles,
            config,
            max_workers=args.max_workers,
            reset_interval=args.reset_interval,
        )
        failed = [r for r in results if not r.passed]
        print(f"{len(results) - len(failed)}/{len(results)} seeds passed")
        for r in failed:
            print(f"  seed {r.seed}: {r.error}")
        return 1 if failed else 0

    result = run_soak(args.cycles, args.seed, config, args.reset_interval)
    print(f"seed={result.seed}")
    print(result.stats.report(result.cycles))
    if not result.passed:
        print(f"FAILED: {result.error}", file=sys.stderr)
        return 1
    print("PASSED")
    return 0


if __name__ == "__main__":
    sys.exit(main())
