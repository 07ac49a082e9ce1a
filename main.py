"""WebSense - cited answers from the live web

Simple CLI for running a single query through the answer pipeline.
"""

import argparse
import asyncio
import sys

from pydantic import ValidationError

from websense.agents.orchestrator import AnswerOrchestrator
from websense.config import get_settings
from websense.models.schemas import AnswerRequest
from websense.research_core.errors import WebSenseError
from websense.services.logger import configure_logging
from websense.tools import web_utils
from websense.tools.timing import format_duration


async def run_answer(query: str, max_links: int, site_filter: list[str] | None) -> int:
    """Answer the given query and print the result."""
    settings = get_settings()
    configure_logging(settings)

    print(f"Query: {query}")
    print("-" * 50)

    try:
        request = AnswerRequest(query=query, max_links=max_links, site_filter=site_filter)
    except ValidationError as e:
        print(f"\n[!] Invalid request: {e}")
        return 2

    orchestrator = AnswerOrchestrator.from_settings(settings)
    try:
        response = await orchestrator.answer(request)
    except WebSenseError as e:
        print(f"\n[!] Error ({e.kind.value}): {e.message}")
        return 1

    print(response.answer)
    print(f"\n{'='*50}")
    print("SOURCES:")
    for i, source in enumerate(response.sources, 1):
        print(f"  [{i}] {source.title} ({web_utils.extract_domain(source.url)})")
        print(f"      {source.url}")
    print(f"\nTook {format_duration(response.meta.took_ms)}", end="")
    print(" (partial)" if response.meta.partial else "")
    return 0


def main():
    parser = argparse.ArgumentParser(description="WebSense answer engine")
    parser.add_argument("--query", "-q", required=True, help="Question to answer")
    parser.add_argument("--max-links", "-n", type=int, default=5, help="Search results to read (1-10)")
    parser.add_argument(
        "--site",
        action="append",
        dest="site_filter",
        help="Only read URLs under this site (repeatable)",
    )

    args = parser.parse_args()

    sys.exit(asyncio.run(run_answer(args.query, args.max_links, args.site_filter)))


if __name__ == "__main__":
    main()
