from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from .config.config_parser import parse_config_file
from .config.logging_config import init_logging
from .errors import ConfigError
from .models import LookupRequest
from .records import QType
from .service import DnsService

logger = logging.getLogger("dnscache.main")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dnscache",
        description="Resolve A/AAAA records through a TTL-aware in-memory cache.",
    )
    parser.add_argument("-c", "--config", default=None, help="Path to YAML config file")
    parser.add_argument(
        "-t",
        "--qtype",
        default="A",
        choices=[q.name for q in QType],
        type=str.upper,
        help="Record type to resolve (default: A)",
    )
    parser.add_argument(
        "-n",
        "--repeat",
        type=int,
        default=1,
        help="Resolve each name this many times (later rounds hit the cache)",
    )
    parser.add_argument("names", nargs="+", help="DNS names to resolve")
    return parser


async def _run(service: DnsService, names: List[str], qtype: QType, repeat: int) -> int:
    """
    Resolve every name `repeat` times and print one JSON line per response.

    Inputs:
      - service: initialized DnsService
      - names: DNS names
      - qtype: record type
      - repeat: rounds per name
    Outputs:
      - int: 0 when every lookup succeeded, else 1
    """
    rc = 0
    for _ in range(max(1, repeat)):
        for name in names:
            resp = await service.query(LookupRequest(question=name, qtype=qtype))
            if not resp.ok:
                rc = 1
            print(json.dumps({"question": name, **resp.model_dump(exclude_none=True)}))
        # Let deferred cache merges run before the next round.
        await asyncio.sleep(0)
    return rc


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        cfg = parse_config_file(args.config)
    except (OSError, ValueError) as e:
        print(f"dnscache: {e}", file=sys.stderr)
        return 1

    init_logging(cfg.logging)

    try:
        service = DnsService(cfg)
    except ConfigError as e:
        logger.critical("Cannot start: %s", e)
        return 1

    try:
        return asyncio.run(_run(service, args.names, QType[args.qtype], args.repeat))
    finally:
        service.release()


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
