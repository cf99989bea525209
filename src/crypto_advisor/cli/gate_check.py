"""CLI to check the crypto_advisor app and its route gate.

Usage:
  poetry run gate-check health
  poetry run gate-check page /dashboard --cookie "sessionid=..."
  poetry run gate-check coins list --page 2
  poetry run gate-check coins detail BTC
  poetry run gate-check gate /admin --api-url http://localhost:8000 --cookie "..."
"""
import argparse
import asyncio
import json
import sys

import httpx

from crypto_advisor.config import get_api_base_url


def print_json(data: object) -> None:
    print(json.dumps(data, indent=2, default=str, ensure_ascii=False))


def cmd_health(client: httpx.Client, _: argparse.Namespace) -> int:
    r = client.get("/")
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_page(client: httpx.Client, args: argparse.Namespace) -> int:
    """GET a page without following redirects and show where the gate sends it."""
    r = client.get(args.path)
    if r.is_redirect:
        print(f"{r.status_code} -> {r.headers.get('location')}")
        return 0
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_coins_list(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.get("/coins", params={"page": args.page})
    r.raise_for_status()
    data = r.json()
    print(f"Page {data.get('page')} of {data.get('total_pages')}: {len(data.get('coins', []))} coins")
    print_json(data["coins"][: args.head] if args.head else data)
    return 0


def cmd_coins_search(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.get("/coins/search", params={"q": args.query})
    r.raise_for_status()
    data = r.json()
    print(f"Found {len(data)} coins for {args.query!r}")
    print_json(data)
    return 0


def cmd_coins_detail(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.get(f"/coins/{args.symbol}")
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_gate(_client: httpx.Client | None, args: argparse.Namespace) -> int:
    """Run the route gate against the backend directly (no app server needed)."""
    from crypto_advisor.middleware import RouteGate

    gate = RouteGate(args.api_url, timeout=args.timeout)
    decision = asyncio.run(gate.decide(args.path, args.cookie))
    print(decision)
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Check crypto_advisor pages, coin views and the route gate.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--base-url",
        default="http://localhost:8001",
        help="App base URL (default: http://localhost:8001)",
    )
    parser.add_argument(
        "--cookie",
        default=None,
        help="Cookie header to send, copied from a browser session",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Request timeout in seconds (default: 30)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command")

    subparsers.add_parser("health", help="GET / health check")

    p = subparsers.add_parser("page", help="GET a page, showing gate redirects")
    p.add_argument("path", help="Page path (e.g. /dashboard, /admin, /auth)")

    coins = subparsers.add_parser("coins", help="Coin views (/coins)")
    coins_sub = coins.add_subparsers(dest="coins_cmd", required=True)
    p = coins_sub.add_parser("list", help="GET /coins")
    p.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    p.add_argument("--head", type=int, default=0, help="Show only first N coins (0 = all)")
    p = coins_sub.add_parser("search", help="GET /coins/search")
    p.add_argument("query", help="Symbol fragment (e.g. btc)")
    p = coins_sub.add_parser("detail", help="GET /coins/{symbol}")
    p.add_argument("symbol", help="Symbol (e.g. BTC)")

    p = subparsers.add_parser("gate", help="Run the route gate against the backend API")
    p.add_argument("path", help="Page path to classify and probe")
    p.add_argument(
        "--api-url",
        default=get_api_base_url(),
        help="Backend API origin (default: NEXT_PUBLIC_API_BASE_URL)",
    )

    args = parser.parse_args()
    base_url = args.base_url.rstrip("/")

    handlers = {
        "health": cmd_health,
        "page": cmd_page,
        "coins": {
            "list": cmd_coins_list,
            "search": cmd_coins_search,
            "detail": cmd_coins_detail,
        },
    }

    cmd = args.command
    if cmd == "gate":
        try:
            return cmd_gate(None, args)
        except httpx.HTTPError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
    if cmd == "coins":
        handler = handlers["coins"][args.coins_cmd]
    else:
        handler = handlers[cmd]

    headers = {"Cookie": args.cookie} if args.cookie else {}
    try:
        with httpx.Client(
            base_url=base_url, timeout=args.timeout, headers=headers, follow_redirects=False
        ) as client:
            return handler(client, args)
    except httpx.HTTPStatusError as e:
        print(f"HTTP error: {e.response.status_code}", file=sys.stderr)
        if e.response.content:
            try:
                print(e.response.json(), file=sys.stderr)
            except ValueError:
                print(e.response.text, file=sys.stderr)
        return 1
    except httpx.RequestError as e:
        print(f"Request error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
