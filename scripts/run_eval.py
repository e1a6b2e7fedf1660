"""Run an evaluation batch against a live Archive RAG Engine server.

Usage:
    1. Seed data:          python scripts/seed_data.py
    2. Start the server:   python -m archive_rag.main
    3. Run evaluation:     python scripts/run_eval.py [--kind rag|citations] [--base-url URL]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from archive_rag.evaluation.runner import (
    DEFAULT_BASE_URL,
    run_remote_citation_eval,
    run_remote_rag_eval,
)


def print_header(title: str) -> None:
    print(f"\n{'=' * 64}")
    print(f"  {title}")
    print(f"{'=' * 64}")


def _fmt(value: float | None, spec: str = ".2f") -> str:
    return "n/a" if value is None else format(value, spec)


def print_rag_run(payload: dict) -> None:
    run = payload["run"]
    print_header("LLM-JUDGE RUN")
    print(f"  Run:            {run['run_id']} ({run['status']})")
    print(f"  Mode:           {run['mode']}  limit={run['limit']}  threshold={run['threshold']}")
    print(f"  Examples:       {run['total_examples']}")
    print(f"  Scored:         {run['scored_examples']}")
    print(f"  Excluded:       {run['excluded_examples']}")
    print(f"  Avg score:      {_fmt(run['avg_score'])}/5")

    print_header("RESULTS")
    for r in payload["results"]:
        if r["status"] == "excluded":
            print(f"  [EXCL] {r['question'][:60]:<60} | {r['error']}")
            continue
        print(
            f"  [{_fmt(r['avg_score']):>4}] {r['question'][:60]:<60} | "
            f"tier={r['retrieval_tier']} rel={r['relevance_score']} "
            f"faith={r['faithfulness_score']} comp={r['completeness_score']}"
        )


def print_citation_run(payload: dict) -> None:
    run = payload["run"]
    print_header("CITATION ACCURACY RUN")
    print(f"  Run:            {run['run_id']} ({run['status']})")
    print(f"  Examples:       {run['total_examples']} ({run['excluded_examples']} excluded)")
    print(f"  Citations:      {run['total_citations']}")
    print(f"  Valid:          {run['valid_citations']}")
    print(f"  Misused:        {run['misused_citations']}")
    print(f"  Hallucinated:   {run['hallucinated_citations']}")
    print(f"  Accuracy:       {_fmt(run['overall_accuracy'], '.1%')}")

    print_header("RESULTS")
    for r in payload["results"]:
        status = "EXCL" if r["status"] == "excluded" else _fmt(r["accuracy_score"], ".0%")
        print(
            f"  [{status:>4}] {r['question'][:60]:<60} | "
            f"{r['valid']}/{r['total_citations']} valid"
        )


async def main(kind: str, base_url: str, limit: int, threshold: float, output: Path | None) -> None:
    print(f"Running {kind} evaluation against {base_url} ...")
    if kind == "rag":
        payload = await run_remote_rag_eval(base_url=base_url, limit=limit, threshold=threshold)
        print_rag_run(payload)
    else:
        payload = await run_remote_citation_eval(
            base_url=base_url, limit=limit, threshold=threshold
        )
        print_citation_run(payload)

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, "w") as f:
            json.dump(payload, f, indent=2)
        print(f"\nRaw results saved to {output}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run an evaluation batch on a live server")
    parser.add_argument("--kind", choices=["rag", "citations"], default="rag")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL)
    parser.add_argument("--limit", type=int, default=5)
    parser.add_argument("--threshold", type=float, default=0.30)
    parser.add_argument("--output", type=Path, default=None)
    args = parser.parse_args()
    asyncio.run(main(args.kind, args.base_url, args.limit, args.threshold, args.output))
