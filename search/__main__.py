"""
Command-line entry point.

    python -m search search "golden retriever puppies"
    python -m search sources "python asyncio tutorial"
    python -m search images "mountain lake wallpaper"
    python -m search images --page https://example.com/gallery
    python -m search videos https://example.com/watch/1
"""

import argparse
import asyncio
import json
import logging
import sys

from dotenv import load_dotenv

from .images import aggregate_images
from .orchestrator import execute_search
from .sources import build_sources
from .videos import aggregate_videos

# Load environment variables
load_dotenv()


async def run(args: argparse.Namespace):
    if args.command == "search":
        outcome = await execute_search(args.query)
        return outcome.to_json()
    if args.command == "sources":
        return await build_sources(args.query, limit=args.limit)
    if args.command == "images":
        if args.page:
            images = await aggregate_images(page_url=args.page)
        else:
            images = await aggregate_images(query=args.query)
        return {"images": [i.model_dump(mode="json") for i in images], "query": args.query or args.page}
    videos = await aggregate_videos(args.url)
    return {"videos": [v.model_dump(mode="json", exclude_none=True) for v in videos], "url": args.url}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="search", description="Resilient web, image and video search.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level.")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("search", help="Run the search engine cascade.")
    p.add_argument("query")

    p = sub.add_parser("sources", help="Search and format results as source cards.")
    p.add_argument("query")
    p.add_argument("--limit", type=int, default=10)

    p = sub.add_parser("images", help="Aggregate images for a query or a single page.")
    p.add_argument("query", nargs="?")
    p.add_argument("--page", help="Scrape images from this page instead of searching.")

    p = sub.add_parser("videos", help="Discover playable videos on a page.")
    p.add_argument("url")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "images" and not (args.query or args.page):
        parser.error("images needs a query or --page")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    payload = asyncio.run(run(args))
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
