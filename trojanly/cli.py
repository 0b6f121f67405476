#  Copyright (c) 2025 SRI International.
#  This work is licensed under CC BY-NC-ND 4.0 license.
#  To view a copy of this license, visit https://creativecommons.org/licenses/by-nc-nd/4.0/
#

import argparse
import json
import sys
import trio

from .configuration import ServiceConfiguration
from .exceptions import TrojanlyError
from .logger import init_logging
from .service import run


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Build Trojan inbound configurations from node descriptors")
    parser.add_argument(
        "nodes",
        nargs="+",
        help="node info JSON documents, one inbound is built per document",
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        help="TOML configuration file (applied on top of the packaged defaults)",
    )
    parser.add_argument(
        "--users",
        type=str,
        help="JSON list of users to attach as Trojan clients",
    )
    parser.add_argument(
        "-o", "--output",
        type=str,
        help="write the inbound JSON to this file instead of stdout",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="increase logging verbosity"
    )
    args = parser.parse_args(argv)

    try:
        config = ServiceConfiguration.load(
            toml_path=args.config,
            runtime_overrides={"logging_level": "DEBUG"} if args.verbose else None)
    except (OSError, ValueError) as exc:  # tomllib.TOMLDecodeError is a ValueError
        parser.error(f"cannot load configuration: {exc}")

    log = init_logging(config.logging_level, json_output=config.json_logs)

    status = 0
    handlers = []
    try:
        handlers = trio.run(run, config, args.nodes, args.users)
    except* OSError as group:
        for exc in group.exceptions:
            log.error("cannot read document", error=str(exc))
        status = 1
    except* TrojanlyError as group:
        for exc in group.exceptions:
            log.error("inbound build failed", error_type=type(exc).__name__, error=str(exc))
        status = 1
    if status:
        return status

    document = json.dumps({"inbounds": [h.to_json() for h in handlers]}, indent=2)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(document + "\n")
    else:
        print(document)
    return 0


if __name__ == "__main__":
    sys.exit(main())
