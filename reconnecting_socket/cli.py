"""
Command line client: keep a TCP or WebSocket connection alive and log what happens.

    reconnecting-socket tcp://127.0.0.1:8124 --send ping --fail-after 4
    reconnecting-socket wss://example.org/stream --strategy exponential
"""
from argparse import ArgumentParser, ArgumentTypeError
import asyncio
import json
import logging
import os
import signal
import sys
from typing import List, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv
import uvicorn

from reconnecting_socket.api import create_app
from reconnecting_socket.config import STRATEGIES, BackoffConfig, config
from reconnecting_socket.core import ReconnectingSocket
from reconnecting_socket.dashboard import Broadcaster, attach
from reconnecting_socket.exceptions import ConfigError
from reconnecting_socket.hooks import HookSet
from reconnecting_socket.logging_setup import setup_logging
from reconnecting_socket.observer import EventKind
from reconnecting_socket.state import ConnectionState
from reconnecting_socket.tcp_client import tcp_hooks
from reconnecting_socket.utils import describe_error, pretty
from reconnecting_socket.ws_client import websocket_hooks

WS_SCHEMES = ("ws", "wss", "http", "https")


def fail_after_arg(s: str) -> Optional[int]:
    if s.lower() in ("none", "unbounded", "0"):
        return None
    try:
        value = int(s)
    except ValueError:
        raise ArgumentTypeError(f"not an integer: {s!r}") from None
    if value < 0:
        raise ArgumentTypeError("fail-after must not be negative")
    return value


def endpoint_arg(s: str) -> str:
    parsed = urlparse(s)
    if parsed.scheme == "tcp":
        if not parsed.hostname or not parsed.port:
            raise ArgumentTypeError(f"tcp endpoint needs host and port: {s!r}")
    elif parsed.scheme not in WS_SCHEMES:
        raise ArgumentTypeError(f"unsupported scheme {parsed.scheme!r} (use tcp:// or ws(s)://)")
    return s


def build_parser() -> ArgumentParser:
    defaults = BackoffConfig()
    p = ArgumentParser(prog="reconnecting-socket", description="Keep a TCP or WebSocket connection alive")
    p.add_argument("url", type=endpoint_arg, help="tcp://host:port or ws(s)://host/path")
    p.add_argument("--name", "-n", default=None, help="Socket name used in logs (default: random)")
    p.add_argument(
        "--config",
        "-c",
        default=None,
        help="Path to a .env file; its values are loaded before the backoff and log settings are read",
    )
    p.add_argument("--strategy", choices=STRATEGIES, default=None,
                   help=f"Backoff strategy (default: {defaults.strategy})")
    p.add_argument("--initial-delay", type=float, default=None,
                   help=f"First retry delay in ms (default: {defaults.initial_delay:g})")
    p.add_argument("--max-delay", type=float, default=None,
                   help=f"Retry delay cap in ms (default: {defaults.max_delay:g})")
    p.add_argument("--randomization-factor", type=float, default=None,
                   help=f"Jitter factor in [0, 1) (default: {defaults.randomization_factor:g})")
    p.add_argument("--fail-after", type=fail_after_arg, default=None,
                   help="Give up after this many consecutive failed attempts (default: never)")
    p.add_argument("--send", default=None, help="Payload written every time the connection opens")
    p.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, WARNING, ERROR; default: LOG_LEVEL or INFO)",
    )
    p.add_argument(
        "--port",
        type=int,
        default=None,
        help="Serve /health and /ws/events on this port while the socket runs (default: off)",
    )
    p.add_argument("--host", default="127.0.0.1", help="Bind address for the API server")
    return p


def parse_args(args: Optional[List[str]] = None):
    parser = build_parser()
    ns = parser.parse_args(args=args)
    if ns.config:
        if not load_dotenv(ns.config, override=False):
            parser.error(f"config file not found or empty: {ns.config}")
    # resolved only now so values from --config take part
    ns.log_level = ns.log_level or os.getenv("LOG_LEVEL", config.LOG_LEVEL)
    ns.log_file = os.getenv("LOG_FILE", config.LOG_FILE)
    return ns


def backoff_from_args(ns) -> BackoffConfig:
    base = BackoffConfig.from_env()
    return BackoffConfig(
        strategy=ns.strategy or base.strategy,
        initial_delay=ns.initial_delay if ns.initial_delay is not None else base.initial_delay,
        max_delay=ns.max_delay if ns.max_delay is not None else base.max_delay,
        randomization_factor=(
            ns.randomization_factor if ns.randomization_factor is not None else base.randomization_factor
        ),
        fail_after=ns.fail_after if ns.fail_after is not None else base.fail_after,
    )


def build_hooks(url: str, send: Optional[str], log) -> HookSet:
    parsed = urlparse(url)

    if parsed.scheme == "tcp":
        def on_data(handle, data: bytes):
            log.info("%s <- %s", handle.label, data.decode("utf-8", errors="replace"))

        def on_open(handle, first_open):
            if send is not None:
                handle.write(send.encode("utf-8"))

        return tcp_hooks(parsed.hostname, parsed.port, on_data=on_data, on_open=on_open)

    def on_message(handle, data):
        if isinstance(data, bytes):
            log.info("%s <- %d bytes", handle.label, len(data))
            return
        try:
            payload = json.loads(data)
        except ValueError:
            payload = data
        print(pretty(payload))

    def on_ws_open(handle, first_open):
        if send is not None:
            handle.write(send)

    return websocket_hooks(url, on_message=on_message, on_open=on_ws_open)


def build_api_server(
    socket: ReconnectingSocket, host: str, port: int, log_level=logging.INFO
) -> uvicorn.Server:
    """Health and event-stream app for one socket, served on the caller's loop."""
    broadcaster = Broadcaster()
    attach(socket, broadcaster)
    app = create_app(socket, broadcaster=broadcaster)
    server = uvicorn.Server(
        uvicorn.Config(app, host=host, port=port, loop="asyncio", log_level=log_level, access_log=False)
    )
    # run() owns SIGINT/SIGTERM
    server.install_signal_handlers = lambda: None
    return server


async def run(ns, backoff: Optional[BackoffConfig] = None) -> int:
    log = setup_logging("reconnecting_socket.cli", ns.log_level, log_file=ns.log_file)
    backoff = backoff or backoff_from_args(ns)
    socket = ReconnectingSocket(build_hooks(ns.url, ns.send, log), backoff=backoff, name=ns.name)
    done = asyncio.Event()

    def on_state(state):
        log.info("%s: state %s", socket.name, state.value)
        if state is ConnectionState.FAILED:
            done.set()

    socket.on(EventKind.INFO, lambda info: log.debug("%s: %s", socket.name, info))
    socket.on(EventKind.STATE, on_state)
    socket.on(EventKind.ERROR, lambda err: log.error("%s: %s", socket.name, describe_error(err)))

    server = server_task = None
    if ns.port is not None:
        server = build_api_server(socket, ns.host, ns.port, log.getEffectiveLevel())
        server_task = asyncio.create_task(server.serve())
        # the socket goes down with the API server
        server_task.add_done_callback(lambda _: done.set())

    loop = asyncio.get_running_loop()
    # register signals for graceful shutdown
    signals = []
    try:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, done.set)
            signals.append(sig)
    except NotImplementedError:
        log.warning("Signal handlers not supported on this platform")

    socket.start()
    try:
        await done.wait()
    finally:
        for sig in signals:
            loop.remove_signal_handler(sig)
        failed = socket.state is ConnectionState.FAILED
        handle = socket.handle
        socket.stop()
        if handle is not None:
            await handle.wait_closed()
        if server_task is not None:
            await server.config.app.state.broadcaster.drain()
            server.should_exit = True
            await server_task
    log.info("%s: exiting", socket.name)
    return 1 if failed else 0


def main(args: Optional[List[str]] = None) -> int:
    ns = parse_args(args)
    try:
        backoff = backoff_from_args(ns)
        return asyncio.run(run(ns, backoff))
    except ConfigError as exc:
        print(f"reconnecting-socket: {exc}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
