"""CLI entrypoint for HireFlow demos."""

from __future__ import annotations

from argparse import ArgumentParser

from hireflow.contracts.types import AgentMode
from hireflow.demo import fixtures
from hireflow.demo.runner import run_scenario


def main() -> None:
    parser = ArgumentParser(description="Run the HireFlow agents once against demo fixtures.")
    parser.add_argument(
        "mode",
        choices=[mode.value for mode in AgentMode],
        help="Agent mode: recommend queues proposals, auto_write moves candidates directly.",
    )
    parser.add_argument(
        "--approve-all",
        action="store_true",
        help="Apply every proposal after the agents run (recommend mode).",
    )
    parser.add_argument(
        "--no-tracing",
        action="store_true",
        help="Disable the console span exporter.",
    )
    args = parser.parse_args()

    result = run_scenario(
        fixtures.hiring_week(),
        AgentMode(args.mode),
        approve_all=args.approve_all,
        start_metrics=False,
        enable_tracing=not args.no_tracing,
    )
    for job_result in result.results:
        status = "ok" if job_result.success else "failed"
        print(f"[{status}] {job_result.message}: {job_result.payload}")
    pending = [p for p in result.proposals if p.status.value == "proposed"]
    print(f"{len(pending)} proposal(s) pending, {len(result.proposals)} total")
    for proposal in pending:
        print(f"  - {proposal.title}: {proposal.description}")


if __name__ == "__main__":
    main()
