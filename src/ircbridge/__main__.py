"""Bridge entrypoint. Loads config, connects the IRC client, logs channel activity."""

from __future__ import annotations

import argparse
import contextlib
import functools
import signal
import sys
import threading
from pathlib import Path

from loguru import logger

from ircbridge import __version__
from ircbridge.config import Config, cfg, load_config_with_env
from ircbridge.errors import ConfigurationError, NotRunning
from ircbridge.events import Disconnected, Join, Leave, Message, Quit, Welcome
from ircbridge.irc import IRCClient


def setup_logging(verbose: bool = False) -> None:
    """Configure loguru. Replace default logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "INFO",
        format=(
            "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
            "<cyan>{name}</cyan> | {message}"
        ),
    )


def reload_config(config_path: Path) -> Config:
    """Load config from path and update global cfg."""
    data = load_config_with_env(config_path)
    cfg.reload(data)
    return cfg


def on_welcome(config: Config, client: IRCClient, evt: Welcome) -> None:
    """Self mode, then connect commands, then the channel."""
    if config.mode:
        client.set_self_mode(config.mode)
    for command in config.connect_commands:
        client.execute_raw(command)
    if config.channel:
        client.join_channel(config.channel)
        logger.info("Joining {}", config.channel)


def on_message(client: IRCClient, evt: Message) -> None:
    logger.info("[{}] <{}> {}", evt.source, evt.author, evt.content)


def on_join(client: IRCClient, evt: Join) -> None:
    logger.info("{} has joined {}", evt.user, evt.channel)


def on_leave(client: IRCClient, evt: Leave) -> None:
    if evt.reason:
        logger.info("{} has left {}: {}", evt.user, evt.channel, evt.reason)
    else:
        logger.info("{} has left {}", evt.user, evt.channel)


def on_quit(client: IRCClient, evt: Quit) -> None:
    if evt.reason:
        logger.info("{} has quit: {}", evt.user, evt.reason)
    else:
        logger.info("{} has quit", evt.user)


def on_disconnected(client: IRCClient, evt: Disconnected) -> None:
    logger.info("IRC session ended: {}", evt.reason)


def build_client(config: Config) -> IRCClient:
    """Client for the configured server with the bridge handlers registered."""
    client = IRCClient(
        config.connection_params(),
        log_raw=config.log_raw,
        strict=config.strict,
    )
    client.events.register(Welcome, functools.partial(on_welcome, config))
    client.events.register(Message, on_message)
    client.events.register(Join, on_join)
    client.events.register(Leave, on_leave)
    client.events.register(Quit, on_quit)
    client.events.register(Disconnected, on_disconnected)
    return client


def shutdown(client: IRCClient) -> None:
    """Send QUIT if still connected, then release the socket."""
    with contextlib.suppress(NotRunning):
        client.request_disconnect()
    client.close()


def run(client: IRCClient) -> int:
    """Run the read loop on its own thread; return a process exit code."""
    errors: list[Exception] = []
    stopped = threading.Event()

    def _target() -> None:
        try:
            client.start()
        except Exception as exc:
            errors.append(exc)
        finally:
            stopped.set()

    thread = threading.Thread(target=_target, name="irc-read-loop", daemon=True)
    thread.start()
    # Short waits keep the main thread free to run signal handlers.
    while not stopped.wait(0.5):
        pass
    thread.join()

    if errors:
        logger.error("IRC client failed: {}", errors[0])
        return 1
    return 0


def main() -> None:
    """Main entrypoint."""
    parser = argparse.ArgumentParser(description="ircbridge: minimal IRC client for chat bridges")
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    args = parser.parse_args()

    setup_logging(args.verbose)

    if not args.config.exists():
        logger.error("Config file not found: {}", args.config)
        sys.exit(1)

    try:
        config = reload_config(args.config)
        client = build_client(config)
    except ConfigurationError as exc:
        logger.error("Invalid config {}: {}", args.config, exc)
        sys.exit(1)
    logger.info("Config loaded from {}", args.config)

    def on_signal(signum: int, frame: object) -> None:
        logger.info("Received signal {}, disconnecting", signum)
        shutdown(client)

    signal.signal(signal.SIGINT, on_signal)
    signal.signal(signal.SIGTERM, on_signal)

    sys.exit(run(client))


if __name__ == "__main__":
    main()
