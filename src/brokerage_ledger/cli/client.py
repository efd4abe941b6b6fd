"""CLI for the brokerage ledger API.

Usage:
  brokerage-cli --user 1 deposit 1000
  brokerage-cli --user 1 buy AAPL "Apple Inc." 182.45 10
  brokerage-cli --user 1 sell 3 5
  brokerage-cli --user 1 transactions --limit 20
"""
import argparse
import json
import sys

import httpx

from brokerage_ledger.identity import USER_ID_HEADER


def print_json(data: object) -> None:
    print(json.dumps(data, indent=2, default=str))


def _get(client: httpx.Client, path: str, **params: object) -> int:
    r = client.get(path, params={k: v for k, v in params.items() if v is not None})
    r.raise_for_status()
    print_json(r.json())
    return 0


def _post(client: httpx.Client, path: str, payload: dict) -> int:
    r = client.post(path, json=payload)
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_health(client: httpx.Client, _: argparse.Namespace) -> int:
    return _get(client, "/")


def cmd_me(client: httpx.Client, _: argparse.Namespace) -> int:
    return _get(client, "/me")


def cmd_buy(client: httpx.Client, args: argparse.Namespace) -> int:
    return _post(
        client,
        "/buy",
        {"symbol": args.symbol, "name": args.name, "price": args.price, "shares": args.shares},
    )


def cmd_sell(client: httpx.Client, args: argparse.Namespace) -> int:
    return _post(client, "/sell", {"position_id": args.position_id, "shares": args.shares})


def cmd_deposit(client: httpx.Client, args: argparse.Namespace) -> int:
    return _post(client, "/deposit", {"amount": args.amount})


def cmd_withdraw(client: httpx.Client, args: argparse.Namespace) -> int:
    return _post(client, "/withdraw", {"amount": args.amount})


def cmd_positions(client: httpx.Client, _: argparse.Namespace) -> int:
    return _get(client, "/positions")


def cmd_balances(client: httpx.Client, _: argparse.Namespace) -> int:
    return _get(client, "/balances")


def cmd_wallet_history(client: httpx.Client, _: argparse.Namespace) -> int:
    return _get(client, "/wallet-balances")


def cmd_brokerage_history(client: httpx.Client, _: argparse.Namespace) -> int:
    return _get(client, "/brokerage-values")


def cmd_transactions(client: httpx.Client, args: argparse.Namespace) -> int:
    return _get(client, "/transactions", limit=args.limit)


def cmd_symbols(client: httpx.Client, _: argparse.Namespace) -> int:
    return _get(client, "/symbols")


HANDLERS = {
    "health": cmd_health,
    "me": cmd_me,
    "buy": cmd_buy,
    "sell": cmd_sell,
    "deposit": cmd_deposit,
    "withdraw": cmd_withdraw,
    "positions": cmd_positions,
    "balances": cmd_balances,
    "wallet-history": cmd_wallet_history,
    "brokerage-history": cmd_brokerage_history,
    "transactions": cmd_transactions,
    "symbols": cmd_symbols,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Talk to the brokerage ledger API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--base-url",
        default="http://localhost:8000",
        help="API base URL (default: http://localhost:8000)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Request timeout in seconds (default: 30)",
    )
    parser.add_argument(
        "--user",
        type=int,
        default=None,
        help=f"User id sent as {USER_ID_HEADER} (as an authenticating gateway would)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command")

    subparsers.add_parser("health", help="GET / health check")
    subparsers.add_parser("me", help="GET /me")

    p = subparsers.add_parser("buy", help="POST /buy")
    p.add_argument("symbol", help="Ticker (e.g. AAPL)")
    p.add_argument("name", help="Display name (e.g. 'Apple Inc.')")
    p.add_argument("price", help="Execution price per share (e.g. 182.45)")
    p.add_argument("shares", type=int, help="Whole number of shares")

    p = subparsers.add_parser("sell", help="POST /sell")
    p.add_argument("position_id", type=int, help="Position id (see `positions`)")
    p.add_argument("shares", type=int, help="Whole number of shares")

    p = subparsers.add_parser("deposit", help="POST /deposit")
    p.add_argument("amount", help="Amount (e.g. 1000.00)")
    p = subparsers.add_parser("withdraw", help="POST /withdraw")
    p.add_argument("amount", help="Amount (e.g. 250.00)")

    subparsers.add_parser("positions", help="GET /positions")
    subparsers.add_parser("balances", help="GET /balances")
    subparsers.add_parser("wallet-history", help="GET /wallet-balances")
    subparsers.add_parser("brokerage-history", help="GET /brokerage-values")
    p = subparsers.add_parser("transactions", help="GET /transactions")
    p.add_argument("--limit", type=int, default=None, help="Max results (default: all)")
    subparsers.add_parser("symbols", help="GET /symbols")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    base_url = args.base_url.rstrip("/")
    headers = {USER_ID_HEADER: str(args.user)} if args.user is not None else {}
    handler = HANDLERS[args.command]

    try:
        with httpx.Client(base_url=base_url, timeout=args.timeout, headers=headers) as client:
            return handler(client, args)
    except httpx.HTTPStatusError as e:
        print(f"HTTP error: {e.response.status_code}", file=sys.stderr)
        if e.response.content:
            try:
                print_json(e.response.json())
            except ValueError:
                print(e.response.text, file=sys.stderr)
        return 1
    except httpx.RequestError as e:
        print(f"Request error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
