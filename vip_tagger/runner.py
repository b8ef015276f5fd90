#!/usr/bin/env python3
"""
VIP tagger command line.

Usage examples:
  # Serve webhooks + scheduled sweep (cron from VIP_SWEEP_CRON)
  vip-tagger serve

  # One sweep over every customer, no writes
  vip-tagger sweep --dry-run

  # Replay specific customers (ids from a failed sweep)
  vip-tagger classify 8492221530332 8492221530333
  vip-tagger classify --retry-file stubborn_ids.txt

  # Show a customer's tags
  vip-tagger check 8492221530332
"""

import argparse
import dataclasses
import json
import logging
import sys
from typing import List

from .app import build_services, configure_logging, create_app
from .config import Config
from .errors import ConfigError, ShopifyError
from .jobs.vip_sweep import start_scheduler

logger = logging.getLogger("vip_tagger")


def parse_args(argv=None):
    p = argparse.ArgumentParser(prog="vip-tagger", description="Tag high-spend Shopify customers as VIP")
    p.add_argument("--log-level", default=None, help="Logging level (default from LOG_LEVEL or INFO)")
    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("serve", help="Run the webhook server and the scheduled sweep")
    s.add_argument("--port", type=int, default=None, help="Listening port (default from PORT)")
    s.add_argument("--no-startup-sweep", action="store_true", help="Don't sweep immediately on boot")

    sw = sub.add_parser("sweep", help="Run one full sweep in the foreground")
    sw.add_argument("--dry-run", action="store_true", help="Don't write anything; just log intended changes")
    sw.add_argument("--workers", type=int, default=None, help="Concurrent customers (default from VIP_SWEEP_WORKERS)")

    c = sub.add_parser("classify", help="Classify specific customers by id")
    c.add_argument("ids", nargs="*", help="Customer ids")
    c.add_argument("--retry-file", default="", help="Path to a file with customer ids (one per line)")
    c.add_argument("--dry-run", action="store_true", help="Don't write anything; just log intended changes")

    k = sub.add_parser("check", help="Print a customer's tags")
    k.add_argument("id", help="Customer id")
    return p.parse_args(argv)


def gather_ids(ids: List[str], file_path: str) -> List[str]:
    out: List[str] = [x.strip() for x in ids if x.strip()]
    if file_path.strip():
        with open(file_path, "r", encoding="utf-8") as f:
            out.extend(line.strip() for line in f if line.strip())
    # de-dup preserve order
    return list(dict.fromkeys(out))


def _print_report(report) -> int:
    print(json.dumps(report.as_dict(), indent=2))
    if report.failed:
        print("Some customers failed; re-run `vip-tagger classify` with those ids to replay.", file=sys.stderr)
        return 1
    return 0


def cmd_serve(config: Config, args) -> int:
    if args.port:
        config = dataclasses.replace(config, port=args.port)
    services = build_services(config)
    app = create_app(config, services=services)
    scheduler = start_scheduler(
        services.sweep,
        config.sweep_cron,
        run_now=config.sweep_on_startup and not args.no_startup_sweep,
    )
    try:
        app.run(host="0.0.0.0", port=config.port)
    finally:
        scheduler.shutdown(wait=False)
        app.extensions["vip"]["tasks"].shutdown(wait=False)
    return 0


def cmd_sweep(config: Config, args) -> int:
    changes = {}
    if args.dry_run:
        changes["dry_run"] = True
    if args.workers is not None:
        if args.workers < 1:
            raise ConfigError("--workers must be >= 1")
        changes["sweep_workers"] = args.workers
    services = build_services(dataclasses.replace(config, **changes))
    print(f"VIP threshold: {config.currency_symbol}{config.vip_threshold} (dry_run={services.config.dry_run})")
    return _print_report(services.sweep.run())


def cmd_classify(config: Config, args) -> int:
    ids = gather_ids(args.ids, args.retry_file)
    if not ids:
        print("ERROR: provide customer ids or --retry-file", file=sys.stderr)
        return 2
    if args.dry_run:
        config = dataclasses.replace(config, dry_run=True)
    services = build_services(config)
    return _print_report(services.sweep.run_for(ids))


def cmd_check(config: Config, args) -> int:
    customer = build_services(config).client.get_customer(args.id)
    has_vip = customer.has_tag(config.vip_tag)
    print(f"Customer {customer.id} ({customer.email}) tags: {', '.join(customer.tags) or 'No tags'}")
    print(f"{config.vip_tag} present: {'YES' if has_vip else 'NO'}")
    return 0


COMMANDS = {
    "serve": cmd_serve,
    "sweep": cmd_sweep,
    "classify": cmd_classify,
    "check": cmd_check,
}


def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    try:
        config = Config.from_env()
        return COMMANDS[args.command](config, args)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    except ShopifyError as e:
        logger.error(f"Shopify request failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
