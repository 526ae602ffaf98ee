import argparse
import logging
import os
import sys

from dotenv import load_dotenv

from .application import bootstrap_bridge, load_config
from .domain import Request, TaskResult
from .infrastructure import load_requests_from_yaml

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="tasksync",
        description="Fetch URLs one by one, blocking on each request until it completes.",
    )
    parser.add_argument("urls", nargs="*", help="URLs to fetch with GET")
    parser.add_argument(
        "--batch",
        help="YAML file with a top-level 'requests' list of {url, method, headers, body}",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Cancel a request after this many seconds (default: TASKSYNC_DEFAULT_TIMEOUT or none)",
    )
    return parser.parse_args(argv)


def describe(destination: Request | str, result: TaskResult | None) -> tuple[str, bool]:
    url = destination.url if isinstance(destination, Request) else destination
    if result is None:
        return f"-\t-\t{url}\ttimed out", False
    data, response, error = result
    if error is not None:
        status = response.status if response else "-"
        return f"{status}\t-\t{url}\t{error!r}", False
    size = len(data) if data is not None else 0
    return f"{response.status}\t{size}\t{url}", response.ok


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    args = parse_args(argv)

    destinations: list[Request | str] = list(args.urls)
    if args.batch:
        destinations.extend(load_requests_from_yaml(args.batch))
    if not destinations:
        logger.error("Nothing to fetch: pass URLs or --batch FILE")
        return 2

    config = load_config()
    failures = 0
    with bootstrap_bridge(config) as container:
        logger.info("Fetching %s destination(s)", len(destinations))
        for destination in destinations:
            result = container.bridge.fetch(destination, timeout=args.timeout)
            line, ok = describe(destination, result)
            print(line)
            if not ok:
                failures += 1
    if failures:
        logger.warning("%s of %s request(s) failed", failures, len(destinations))
        return 1
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
