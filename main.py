from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from dotenv import load_dotenv
from pydantic import ValidationError

from cache import CacheStore, ContentCache
from config import AppConfig
from errors import FetchError
from redirects import RedirectController
from search_client import SearchClient, SearchResult
from service import FetchService
from telemetry import Telemetry
from transport import HttpxTransport, SocketTransport

Transport = Union[SocketTransport, HttpxTransport]


def configure_logging(level: str = "INFO") -> None:
    """Initialise console logging for the CLI."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@dataclass
class AppContext:
    """Bundle for the main application components."""

    config: AppConfig
    telemetry: Telemetry
    transport: Transport
    controller: RedirectController
    cache: Optional[ContentCache]
    service: FetchService
    search_client: SearchClient


def create_context(config: AppConfig) -> AppContext:
    """Instantiate application components."""
    telemetry = Telemetry()
    transport_cls = HttpxTransport if config.transport_backend == "httpx" else SocketTransport
    transport = transport_cls(
        timeout_seconds=config.request_timeout_seconds,
        user_agent=config.user_agent,
        accept_language=config.accept_language,
        verify_tls=config.verify_tls,
    )
    controller = RedirectController(
        transport,
        max_redirects=config.max_redirects,
        telemetry=telemetry,
    )
    cache = (
        ContentCache(CacheStore(config.cache_file), ttl_seconds=config.cache_ttl_seconds)
        if config.enable_cache
        else None
    )
    service = FetchService(
        controller=controller,
        telemetry=telemetry,
        cache=cache,
        default_accept=config.html_accept,
        json_accept=config.json_accept,
    )
    search_client = SearchClient(
        service,
        url_template=config.search_url_template,
        max_results=config.max_search_results,
    )
    return AppContext(
        config=config,
        telemetry=telemetry,
        transport=transport,
        controller=controller,
        cache=cache,
        service=service,
        search_client=search_client,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="go2web",
        description="Fetch a web page or search the web and print readable text.",
    )
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("-u", "--url", help="Make an HTTP request to the URL and print the response")
    mode.add_argument(
        "-s",
        "--search",
        nargs="+",
        metavar="TERM",
        help="Search the term and print the top results",
    )
    parser.add_argument(
        "--open",
        type=int,
        metavar="N",
        help="With --search, fetch and print the N-th result",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Request an application/json representation",
    )
    parser.add_argument(
        "--raw",
        action="store_true",
        help="Print the raw HTTP response instead of extracted text",
    )
    parser.add_argument("--no-cache", action="store_true", help="Bypass the response cache")
    return parser


async def run(argv: Optional[Sequence[str]] = None) -> int:
    """Bootstrap coroutine for the go2web CLI."""
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = AppConfig()
    except ValidationError as exc:
        configure_logging()
        logging.error("Invalid configuration: %s", exc)
        return 2
    configure_logging(config.log_level)

    context = create_context(config)
    try:
        if args.url:
            return await run_fetch_url(context, args)
        return await run_search(context, args)
    except FetchError as exc:
        logging.error("Error making request: %s", exc)
        return 1
    finally:
        await graceful_shutdown(context)


async def run_fetch_url(context: AppContext, args: argparse.Namespace) -> int:
    accept = context.config.json_accept if args.json else None
    if args.raw:
        fetched = await context.service.fetch_raw(args.url, accept=accept)
        print(fetched.payload.decode("utf-8", errors="replace"))
        return 0

    text = await context.service.fetch_and_extract(
        args.url, accept=accept, use_cache=not args.no_cache
    )
    print(text)
    return 0


async def run_search(context: AppContext, args: argparse.Namespace) -> int:
    term = " ".join(args.search)
    results = await context.search_client.search(term)
    if args.json:
        payload = [
            {"title": item.title, "url": item.url, "snippet": item.snippet}
            for item in results
        ]
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        print_results(results)

    if not results:
        return 0

    choice = args.open
    if choice is None and len(results) >= context.config.max_search_results and sys.stdin.isatty():
        choice = prompt_choice()
    if choice is None:
        return 0
    if not 1 <= choice <= len(results):
        logging.error("No search result found with number %s", choice)
        return 1

    text = await context.search_client.open_result(
        results[choice - 1], use_cache=not args.no_cache
    )
    print(text)
    return 0


def print_results(results: List[SearchResult]) -> None:
    if not results:
        print("No search results found. The search engine page may have changed its structure.")
        return
    print("Search Results:")
    print("===============")
    for index, result in enumerate(results, start=1):
        print(f"{index}. {result.title}")
        print(f"   {result.url}")
        print()


def prompt_choice() -> Optional[int]:
    try:
        raw = input("Choose the URL you want to visit by typing its number: ")
    except EOFError:
        return None
    raw = raw.strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logging.error("Not a number: %s", raw)
        return None


async def graceful_shutdown(context: AppContext) -> None:
    """Tear down long-lived resources."""
    try:
        await context.transport.close()
    except OSError as exc:
        logging.warning("Shutdown encountered a network error: %s", exc)


def cli() -> None:
    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    cli()
