"""
List catalog resources from the command line.

Usage:
    python -m resource_catalog --site-url https://example.org
    python -m resource_catalog --search budget --tag 12 --orderby date --order desc
    python -m resource_catalog --json > resources.json

Options not given on the command line come from RESOURCE_CATALOG_* variables
(or a .env file). Exits with status 1 when any collection failed to load.
"""
import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List, Optional

from resource_catalog.client import CatalogClient
from resource_catalog.models import FACETS, SORT_DIRECTIONS, SORT_KEYS, CollectionStatus, Resource
from resource_catalog.observability import get_logger, setup_logging
from resource_catalog.options import load_options

logger = get_logger("resource_catalog.cli")


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="resource_catalog", description="List catalog resources.")
    parser.add_argument("--site-url", help="WordPress site URL")
    parser.add_argument("--search", default="", help="Free-text search")
    for facet in FACETS:
        parser.add_argument(f"--{facet}", type=int, help=f"Only resources with this {facet} term id")
    parser.add_argument("--orderby", choices=SORT_KEYS)
    parser.add_argument("--order", choices=SORT_DIRECTIONS)
    parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    parser.add_argument("--log-level", default=None)
    return parser.parse_args(argv)


def _describe(client: CatalogClient, resource: Resource) -> Dict[str, Any]:
    refs = resource.taxonomy_refs
    return {
        "id": resource.id,
        "title": resource.title,
        "slug": resource.slug,
        "link": resource.link,
        "audiences": [client.audience_name(i) for i in refs.audience],
        "lengths": [client.length_name(i) for i in refs.length],
        "programs": [client.program_name(i) for i in refs.program],
        "categories": [client.category_name(i) for i in refs.category],
        "tags": [client.tag_name(i) for i in refs.tag],
    }


async def run(args: argparse.Namespace) -> int:
    overrides: Dict[str, Any] = {"show_all": False}
    if args.site_url:
        overrides["site_url"] = args.site_url
    if args.orderby:
        overrides["orderby"] = args.orderby
    if args.order:
        overrides["order"] = args.order
    options = load_options(overrides)

    async with CatalogClient(options) as client:
        await client.fetch_vocabularies()
        for facet in FACETS:
            value = getattr(args, facet)
            if value is not None:
                client.set_filter(facet, value)
        client.set_search(args.search)
        await client.fetch_resources()

        rows = [_describe(client, r) for r in client.resources]
        if args.json:
            print(json.dumps(rows, indent=2, default=str))
        else:
            for row in rows:
                terms = ", ".join(str(t) for t in row["categories"] + row["tags"])
                print(f"{row['id']:>6}  {row['title']}" + (f"  [{terms}]" if terms else ""))
            print(f"{client.resource_count} resource(s)", file=sys.stderr)

        failed = [name for name, status in client.status.items() if status == CollectionStatus.FAILED]
        if failed:
            logger.error(f"Failed to load: {', '.join(failed)}")
            return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    setup_logging(level=args.log_level)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
