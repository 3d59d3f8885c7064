#!/usr/bin/env python3
"""Showcase of decision_trace features.

This example instruments a small competitor-selection pipeline and then asks
the trace service why candidates disappeared:
  • TraceClient with the run() context manager and record_step()
  • Automatic summarization of oversized candidate arrays
  • In-process delivery via ServiceTransport (no HTTP server needed)
  • Queries: run listing, filter-elimination, pipeline stats

Usage:
  # Three runs, default 90% elimination threshold
  python examples/showcase.py

  # More runs and a stricter threshold
  python examples/showcase.py --runs 10 --threshold 99
"""

import argparse
import json
import random

from decision_trace import (
    RunStatus,
    ServiceTransport,
    StepType,
    TraceClient,
    TraceService,
    get_trace_logger,
    setup_logging,
)

setup_logging(level="INFO")
logger = get_trace_logger("decision_trace.showcase")


def _catalog(size: int, rng: random.Random) -> list[dict[str, object]]:
    return [
        {"asin": f"B{index:05d}", "price": round(rng.uniform(2, 200), 2), "rating": round(rng.uniform(1, 5), 1)}
        for index in range(size)
    ]


def select_competitor(client: TraceClient, reference_price: float, rng: random.Random) -> str | None:
    """Run one instrumented pipeline and return the chosen ASIN."""
    with client.run("competitor-selection", input={"asin": "B0REF", "price": reference_price}):
        client.record_step(
            "keyword-generation",
            StepType.LLM,
            input={"title": "Insulated steel water bottle 750ml"},
            output={"keywords": ["insulated bottle", "steel flask", "vacuum bottle"]},
            reasoning="Extracted material, capacity and product type from the title",
        )

        catalog = _catalog(rng.randint(2000, 6000), rng)
        client.record_step("catalog-search", StepType.SEARCH, output={"hits": len(catalog)})

        low, high = reference_price * 0.5, reference_price * 2
        kept: list[dict[str, object]] = []
        dropped: list[dict[str, object]] = []
        for item in catalog:
            if low <= item["price"] <= high:  # type: ignore[operator]
                kept.append(item)
            else:
                dropped.append({"candidate": item, "reasons": ["price out of range"]})
        client.record_step(
            "price-filter",
            StepType.FILTER,
            candidates=kept,
            filtered=dropped,
            reasoning=f"Kept candidates priced between {low:.2f} and {high:.2f}",
        )

        if not kept:
            client.end_run(RunStatus.ERROR, error="no candidates in price range")
            return None
        best = max(kept, key=lambda item: item["rating"])  # type: ignore[arg-type, return-value]
        client.record_step("rating-rank", StepType.RANK, candidates=kept[:10], output=best, reasoning="Highest rating wins")
        client.end_run(output=best)
        return str(best["asin"])


def main():
    parser = argparse.ArgumentParser(description="Instrument a toy pipeline and query its decision trace")
    parser.add_argument("--runs", type=int, default=3)
    parser.add_argument("--threshold", type=float, default=90.0)
    parser.add_argument("--seed", type=int, default=7)
    args = parser.parse_args()

    rng = random.Random(args.seed)
    service = TraceService()
    client = TraceClient(transport=ServiceTransport(service), on_error=lambda e: logger.error(f"Trace delivery failed: {e}"))

    for _ in range(args.runs):
        chosen = select_competitor(client, reference_price=rng.uniform(5, 40), rng=rng)
        logger.info(f"Selected competitor: {chosen}")
    client.shutdown()

    report = service.filter_elimination(threshold=args.threshold)
    logger.info(f"{report['count']} filter steps eliminated at least {args.threshold}% of candidates")
    print(json.dumps(report["matches"], indent=2))
    print(json.dumps(service.pipeline_stats("competitor-selection"), indent=2))


if __name__ == "__main__":
    main()
