from __future__ import annotations

import argparse
from typing import Optional, List

from pydantic import ValidationError
from yaml import YAMLError

from .log import get_logger, set_level
from .config import load_yaml, validate_config, AppConfig
from .emit import run_forever, run_once, writer_from_config

"""
CLI entrypoint

Usage:
  ohmgraphite --config /path/config.yaml [--once]

Behavior:
  - Loads & validates config
  - Sends one report (--once) or reports every `interval` seconds
  - All diagnostics/logs go to STDERR
"""

_LOG = get_logger(__name__)
_DEFAULT_CONFIG = "ohmgraphite.yaml"


# This function builds the parser for the CLI.
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="ohmgraphite", description="Hardware sensor readings -> Graphite plaintext"
    )
    p.add_argument(
        "-c",
        "--config",
        default=_DEFAULT_CONFIG,
        help=f"Path to YAML config (default: {_DEFAULT_CONFIG})",
    )
    p.add_argument(
        "--once",
        action="store_true",
        help="Send a single report and exit.",
    )
    return p


# This function is the main function for the CLI.
def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config_path: str = args.config

    # Load and validate config
    try:
        raw = load_yaml(config_path)
        cfg: AppConfig = validate_config(raw)
    except FileNotFoundError:
        _LOG.error("Config file not found: %s", config_path)
        return 1
    except YAMLError as e:
        _LOG.error("Failed to parse YAML config (%s): %s", config_path, e)
        return 1
    except ValidationError as e:
        _LOG.error("Config validation error: %s", e)
        return 1
    except ValueError as e:  # top-level document is not a mapping
        _LOG.error("Invalid config (%s): %s", config_path, e)
        return 1

    set_level(cfg.log_level)

    # Run; the connection is released on every exit path
    try:
        with writer_from_config(cfg) as writer:
            if args.once:
                ok = run_once(cfg, writer, do_sleep=False)
                return 0 if ok else 1
            run_forever(cfg, writer)
        return 0
    except KeyboardInterrupt:
        _LOG.info("Interrupted, exiting.")
        return 130
    except Exception as e:
        _LOG.exception("Unexpected runtime error: %s", e)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
