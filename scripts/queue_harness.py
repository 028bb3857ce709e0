#!/usr/bin/env python3
"""
Judge Queue Concurrency Harness

Drives a running server with many judges pulling and scoring teams at once,
then checks the resulting queue statistics for over-assignment.

Usage:
    python -m hackjudge.cli db seed --teams 20 --judges 8
    python scripts/queue_harness.py --judges 8 --round 1
"""
import asyncio
import argparse
import json
import random
import sys
import time
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Dict, List, Optional

import aiohttp

from hackjudge.seed_data import judge_email_for


@dataclass
class RequestResult:
    """Result from a single request."""
    judge_email: str
    endpoint: str
    status_code: int
    response_time_ms: float
    outcome: Optional[str] = None
    team_name: Optional[str] = None
    error: Optional[str] = None


@dataclass
class HarnessSummary:
    total_requests: int
    assigned: int
    completed: int
    status_code_distribution: Dict[int, int]
    outcome_distribution: Dict[str, int]
    avg_response_time_ms: float
    max_response_time_ms: float
    violations: List[str] = field(default_factory=list)
    timestamp: str = ""


class QueueHarness:
    """Runs judges concurrently against the queue API."""

    def __init__(self, base_url: str, judges: List[str], round_number: int, seed: int = 0):
        self.base_url = base_url.rstrip('/')
        self.judges = judges
        self.round_number = round_number
        self.rng = random.Random(seed)
        self.results: List[RequestResult] = []

    def _headers(self, judge_email: str) -> Dict[str, str]:
        return {
            'Content-Type': 'application/json',
            'Accept': 'application/json',
            'X-Judge-Email': judge_email,
        }

    async def _post(self, session: aiohttp.ClientSession, judge_email: str, endpoint: str, payload: Dict) -> RequestResult:
        start_time = time.time()
        try:
            async with session.post(
                f"{self.base_url}{endpoint}",
                headers=self._headers(judge_email),
                json=payload
            ) as response:
                elapsed = (time.time() - start_time) * 1000
                try:
                    body = await response.json()
                except (aiohttp.ContentTypeError, json.JSONDecodeError):
                    body = {}
                team = (body.get("team") or {}).get("team_name") if isinstance(body, dict) else None
                result = RequestResult(
                    judge_email=judge_email,
                    endpoint=endpoint,
                    status_code=response.status,
                    response_time_ms=elapsed,
                    outcome=body.get("status") or body.get("code") if isinstance(body, dict) else None,
                    team_name=team,
                )
        except aiohttp.ClientError as e:
            result = RequestResult(
                judge_email=judge_email,
                endpoint=endpoint,
                status_code=0,
                response_time_ms=(time.time() - start_time) * 1000,
                error=str(e),
            )
        self.results.append(result)
        return result

    async def _run_judge(self, session: aiohttp.ClientSession, judge_email: str, max_requests: int) -> None:
        for _ in range(max_requests):
            result = await self._post(session, judge_email, "/api/queue/next", {"round": self.round_number})

            if result.status_code == 200 and result.outcome == "assigned":
                await asyncio.sleep(self.rng.uniform(0, 0.05))
                await self._post(session, judge_email, "/api/queue/complete", {
                    "team_name": result.team_name,
                    "round": self.round_number,
                    "score": round(self.rng.uniform(1, 10), 1),
                })
                continue

            if result.status_code in (503, 429, 0):
                await asyncio.sleep(self.rng.uniform(0.05, 0.25))
                continue

            # all_teams_complete, no_more_for_you or a hard error
            return

    async def run(self, max_requests_per_judge: int = 200) -> HarnessSummary:
        self.results = []
        async with aiohttp.ClientSession() as session:
            await asyncio.gather(*[
                self._run_judge(session, judge, max_requests_per_judge)
                for judge in self.judges
            ])
            async with session.get(
                f"{self.base_url}/api/queue/stats",
                params={"round": self.round_number},
                headers=self._headers(self.judges[0]),
            ) as response:
                stats = await response.json()
        return self._summarize(stats)

    def _summarize(self, stats: Dict) -> HarnessSummary:
        status_dist: Dict[int, int] = {}
        outcome_dist: Dict[str, int] = {}
        for r in self.results:
            status_dist[r.status_code] = status_dist.get(r.status_code, 0) + 1
            if r.outcome:
                outcome_dist[r.outcome] = outcome_dist.get(r.outcome, 0) + 1

        violations = []
        required = stats.get("required_judges_per_team", 0)
        for team in stats.get("teams", []):
            if team["judge_count"] > required:
                violations.append(f"{team['team_name']} has {team['judge_count']} judges (max {required})")
            if len(set(team["judges"])) != len(team["judges"]):
                violations.append(f"{team['team_name']} lists a judge twice")

        times = [r.response_time_ms for r in self.results]
        return HarnessSummary(
            total_requests=len(self.results),
            assigned=sum(1 for r in self.results if r.outcome == "assigned"),
            completed=sum(1 for r in self.results if r.endpoint.endswith("complete") and r.status_code == 200),
            status_code_distribution=status_dist,
            outcome_distribution=outcome_dist,
            avg_response_time_ms=sum(times) / len(times) if times else 0,
            max_response_time_ms=max(times) if times else 0,
            violations=violations,
            timestamp=time.strftime('%Y-%m-%dT%H:%M:%SZ'),
        )

    def save_results(self, output_dir: str, summary: HarnessSummary) -> str:
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        with open(output_path / "queue_harness_detailed.json", 'w') as f:
            json.dump([asdict(r) for r in self.results], f, indent=2)

        summary_file = output_path / "queue_harness_summary.json"
        with open(summary_file, 'w') as f:
            json.dump(asdict(summary), f, indent=2)
        return str(summary_file)


def main():
    parser = argparse.ArgumentParser(description='Judge Queue Concurrency Harness')
    parser.add_argument('--judges', '-j', type=int, default=8, help='Number of seeded judges to run (default: 8)')
    parser.add_argument('--round', '-r', type=int, default=1, help='Round to judge (default: 1)')
    parser.add_argument('--base-url', '-u', default='http://localhost:8000', help='API base URL')
    parser.add_argument('--seed', type=int, default=0, help='Random seed for think times and scores')
    parser.add_argument('--output-dir', '-o', default='./artifacts/queue_harness', help='Output directory')
    args = parser.parse_args()

    judges = [judge_email_for(i) for i in range(args.judges)]
    harness = QueueHarness(args.base_url, judges, args.round, seed=args.seed)

    print("=== Judge Queue Harness ===")
    print(f"Judges: {len(judges)}")
    print(f"Round: {args.round}")
    print(f"Base URL: {args.base_url}")

    start_time = time.time()
    summary = asyncio.run(harness.run())
    print(f"\nCompleted in {time.time() - start_time:.2f}s")

    print("\n=== Results ===")
    print(f"Requests: {summary.total_requests}")
    print(f"Assigned: {summary.assigned}")
    print(f"Completed: {summary.completed}")
    print("Outcomes:")
    for outcome, count in sorted(summary.outcome_distribution.items()):
        print(f"  {outcome}: {count}")
    print("Status codes:")
    for code, count in sorted(summary.status_code_distribution.items()):
        print(f"  {code}: {count}")

    if summary.violations:
        print("\n⚠️  INVARIANT VIOLATIONS:")
        for v in summary.violations:
            print(f"  - {v}")

    print(f"\nResults saved: {harness.save_results(args.output_dir, summary)}")
    sys.exit(1 if summary.violations else 0)


if __name__ == "__main__":
    main()
