from __future__ import annotations

import argparse
import asyncio
import os
import sys
from dataclasses import replace

from .config import (
    HubRuntimeConfig,
    default_config_path,
    ensure_config_dir,
    load_config_file,
)
from .logging_config import configure_logging
from .service import HubService


def _write_default_config(config_path: str) -> None:
    ensure_config_dir(config_path)

    d = HubRuntimeConfig()
    content = f"""# rvzd configuration (TOML)
#
# This file was created on first run.
# Edit it, then start rvzd again.

[hub]

# Listen address. The PORT environment variable and --port override port.
host = {d.host!r}
port = {d.port}

# TLS. When cert_file is set the server speaks wss:// instead of ws://.
# key_file may be left empty if the key is bundled in cert_file.
cert_file = ""
key_file = ""

# Plain HTTP endpoints served on the same port.
# health_path answers a fixed text; stats_path reports counters ("" disables).
health_path = {d.health_path!r}
stats_path = {d.stats_path!r}

# WebSocket keepalive (0 disables). A peer that misses a pong within
# ping_timeout_s is disconnected and leaves its room.
ping_interval_s = {d.ping_interval_s}
ping_timeout_s = {d.ping_timeout_s}

# Limits.
# max_message_bytes: largest inbound frame accepted.
# outbox_max: payloads queued per connection before new ones are dropped.
max_message_bytes = {d.max_message_bytes}
outbox_max = {d.outbox_max}

[logging]

# Log level for rvzd itself.
level = {d.log_level!r}

# Log level for the websockets library.
ws_level = {d.log_ws_level!r}

# Log to stderr (systemd/journald friendly).
console = true

# Optional file path for logs (leave empty to disable).
file = ""

# Log format and optional date format.
format = {d.log_format!r}
datefmt = ""
"""

    with open(config_path, "w", encoding="utf-8") as f:
        f.write(content)


def _build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="rvzd", description="Run a WebRTC rendezvous/signaling server"
    )

    p.add_argument(
        "--config",
        default=str(default_config_path()),
        help="Path to a TOML config file (created on first run)",
    )
    p.add_argument("--host", default=None, help="Listen address")
    p.add_argument(
        "--port",
        type=int,
        default=int(os.environ["PORT"]) if os.environ.get("PORT") else None,
        help="Listen port (default: $PORT, then config, then 8443)",
    )
    p.add_argument("--cert-file", default=None, help="TLS certificate chain (PEM)")
    p.add_argument("--key-file", default=None, help="TLS private key (PEM)")

    p.add_argument(
        "--ping-interval",
        type=float,
        default=None,
        help="WebSocket ping interval seconds (0 disables)",
    )
    p.add_argument(
        "--ping-timeout",
        type=float,
        default=None,
        help="Close connection if no pong within this many seconds (0 disables)",
    )
    p.add_argument(
        "--max-message-bytes",
        type=int,
        default=None,
        help="Maximum inbound frame size in bytes",
    )

    p.add_argument(
        "--log-level",
        default=None,
        help="Logging level override (DEBUG, INFO, WARNING, ERROR). Default comes from config.",
    )
    p.add_argument(
        "--log-file",
        default=None,
        help="Log file path override (empty disables file logging). Default comes from config.",
    )

    return p


def build_config(args: argparse.Namespace) -> HubRuntimeConfig:
    cfg = HubRuntimeConfig()
    if args.config and os.path.exists(args.config):
        cfg = load_config_file(cfg, str(args.config))

    if args.host is not None:
        cfg = replace(cfg, host=str(args.host))
    if args.port is not None:
        cfg = replace(cfg, port=int(args.port))
    if args.cert_file is not None:
        cfg = replace(cfg, cert_file=str(args.cert_file) or None)
    if args.key_file is not None:
        cfg = replace(cfg, key_file=str(args.key_file) or None)

    if args.ping_interval is not None:
        cfg = replace(cfg, ping_interval_s=float(args.ping_interval))
    if args.ping_timeout is not None:
        cfg = replace(cfg, ping_timeout_s=float(args.ping_timeout))
    if args.max_message_bytes is not None:
        cfg = replace(cfg, max_message_bytes=int(args.max_message_bytes))

    if args.log_level is not None:
        cfg = replace(cfg, log_level=str(args.log_level))
    if args.log_file is not None:
        cfg = replace(cfg, log_file=str(args.log_file) or None)

    return cfg


def main(argv: list[str] | None = None) -> None:
    args = _build_arg_parser().parse_args(sys.argv[1:] if argv is None else argv)

    config_path = str(args.config)
    if config_path and not os.path.exists(config_path):
        _write_default_config(config_path)
        print(
            "Created default rvzd config. Edit it before starting:\n"
            f"- Config: {config_path}\n"
            "\nThen re-run rvzd.",
            file=sys.stderr,
        )
        raise SystemExit(0)

    cfg = build_config(args)
    configure_logging(cfg, override_level=args.log_level, override_file=args.log_file)

    svc = HubService(cfg)
    try:
        asyncio.run(svc.run_forever())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
