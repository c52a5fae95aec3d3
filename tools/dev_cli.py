from __future__ import annotations

import argparse
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = REPO_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from dotenv import load_dotenv

from portfolio_ledger.config.paths import data_dir, last_result_path, mappings_path
from portfolio_ledger.config.settings import get_settings
from portfolio_ledger.utils.logging import configure_logging


def _parse_mapping_args(pairs: list[str]) -> dict[str, str]:
    mapping: dict[str, str] = {}
    for pair in pairs:
        field, sep, header = pair.partition("=")
        if not sep or not field.strip() or not header.strip():
            raise SystemExit(f"Invalid --map value '{pair}'; expected field=Column Name")
        mapping[field.strip()] = header.strip()
    return mapping


def _cmd_parse(args: argparse.Namespace) -> int:
    from portfolio_ledger.ingest.csv_mapping import file_signature, get_saved_schema_mapping, save_schema_mapping
    from portfolio_ledger.ingest.csv_parser import parse_csv
    from portfolio_ledger.ingest.tokenizer import tokenize
    from portfolio_ledger.portfolio.frames import asset_log_frame, assets_frame, transactions_frame
    from portfolio_ledger.portfolio.metrics import portfolio_from_result
    from portfolio_ledger.storage.cache import save_last_portfolio
    from portfolio_ledger.utils.money import format_money

    template = args.template or get_settings().default_template
    text = Path(args.file).read_text(encoding="utf-8-sig")

    mapping = _parse_mapping_args(args.map or [])
    grid, _ = tokenize(text)
    signature = file_signature(grid.headers) if grid is not None else ""
    if not mapping and signature:
        mapping = get_saved_schema_mapping(template, signature) or {}

    result = parse_csv(text, template, mapping or None)
    if result.error:
        print(f"Error: {result.error}", file=sys.stderr)
        for line in result.logs.setup:
            print(f"  {line}", file=sys.stderr)
        return 1

    if args.save_mapping and mapping and grid is not None:
        save_schema_mapping(template, signature, grid.headers, mapping)

    portfolio = portfolio_from_result(result, template)
    print(assets_frame(result).to_string(index=False))
    if args.transactions:
        print()
        print(transactions_frame(result).to_string(index=False))
    if args.logs:
        for line in result.logs.setup:
            print(line)
        for asset in result.logs.asset_logs:
            print(f"\n[{asset}]")
            print(asset_log_frame(result, asset).to_string(index=False))
    for line in result.logs.summary:
        print(line)
    print(f"Total invested: {format_money(portfolio.total_cost, portfolio.currency)}")

    if not args.no_cache:
        save_last_portfolio(portfolio)
    return 0


def _cmd_paths(_: argparse.Namespace) -> int:
    print(f"DATA_DIR={data_dir()}")
    print(f"MAPPINGS={mappings_path()}")
    print(f"LAST_RESULT={last_result_path()}")
    return 0


def _cmd_suggest(_: argparse.Namespace) -> int:
    from portfolio_ledger.assistant.suggestions import provide_investment_suggestions
    from portfolio_ledger.portfolio.metrics import build_portfolio_summary
    from portfolio_ledger.storage.cache import load_last_portfolio

    settings = get_settings()
    if not settings.enable_suggestions:
        print("Suggestions are disabled. Set ENABLE_SUGGESTIONS=1 to enable.", file=sys.stderr)
        return 1
    portfolio = load_last_portfolio()
    if portfolio is None:
        print("No cached portfolio. Run `parse` first.", file=sys.stderr)
        return 1
    result = provide_investment_suggestions(
        build_portfolio_summary(portfolio), model=settings.openai_model
    )
    print(result.suggestions)
    return 0


def _cmd_prices(_: argparse.Namespace) -> int:
    from portfolio_ledger.portfolio.metrics import build_portfolio_summary
    from portfolio_ledger.providers.prices import EodhdPriceProvider, apply_live_prices
    from portfolio_ledger.storage.cache import load_last_portfolio, save_last_portfolio

    portfolio = load_last_portfolio()
    if portfolio is None:
        print("No cached portfolio. Run `parse` first.", file=sys.stderr)
        return 1
    provider = EodhdPriceProvider.from_settings(get_settings())
    priced, errors = apply_live_prices(portfolio, provider)
    for error in errors:
        print(f"{error.ticker}: {error.error}", file=sys.stderr)
    save_last_portfolio(priced)
    print(build_portfolio_summary(priced))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Portfolio Ledger developer CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sp_parse = subparsers.add_parser("parse", help="Parse a broker CSV export into holdings")
    sp_parse.add_argument("file", help="CSV or TSV export to parse.")
    sp_parse.add_argument(
        "--template",
        choices=["default", "alternate", "groww"],
        default=None,
        help="Export layout (defaults to DEFAULT_CSV_TEMPLATE).",
    )
    sp_parse.add_argument(
        "--map",
        action="append",
        metavar="FIELD=COLUMN",
        help="Override the column name for a field, e.g. asset=Instrument.",
    )
    sp_parse.add_argument("--save-mapping", action="store_true", help="Remember --map for this header layout.")
    sp_parse.add_argument("--transactions", action="store_true", help="Print the transaction list.")
    sp_parse.add_argument("--logs", action="store_true", help="Print the per-asset audit log.")
    sp_parse.add_argument("--no-cache", action="store_true", help="Do not store the result locally.")
    sp_parse.set_defaults(func=_cmd_parse)

    sp_paths = subparsers.add_parser("paths", help="Print configured project paths")
    sp_paths.set_defaults(func=_cmd_paths)

    sp_prices = subparsers.add_parser("prices", help="Refresh current prices of the cached portfolio")
    sp_prices.set_defaults(func=_cmd_prices)

    sp_suggest = subparsers.add_parser("suggest", help="Ask for suggestions on the cached portfolio")
    sp_suggest.set_defaults(func=_cmd_suggest)

    return parser


def main() -> int:
    load_dotenv(dotenv_path=REPO_ROOT / ".env")
    configure_logging(get_settings().log_level)
    parser = build_parser()
    args = parser.parse_args()
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
