#!/usr/bin/env python3
"""
Main entry point for the Word of the Day chat companion
"""

import asyncio
import logging
import os
import signal
import sys

# Import all modules first (required by E402)
from .app import CompanionApp
from .config import ConfigRepository, create_config_watcher
from .constants import DEFAULT_CONFIG_FILE, DEFAULT_WORD_STORE_FILE
from .errors.handling import log_error

# Configure logging after imports to prevent other modules from configuring it
from .logging_config import LoggerConfigurator
from .utils import emit_startup_instructions
from .word import WordStore

configurator = LoggerConfigurator()
configurator.configure()


def config_file_path() -> str:
    return os.environ.get("WOTD_CONF_FILE", DEFAULT_CONFIG_FILE)


def _install_signal_handlers(stop_event: asyncio.Event) -> None:  # pragma: no cover
    loop = asyncio.get_running_loop()

    def handler(signum: int) -> None:
        if stop_event.is_set():
            return
        logging.warning(f"🛑 Signal received - initiating shutdown (signal={signum})")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, handler, sig)
        except (NotImplementedError, RuntimeError):
            # Windows event loops lack add_signal_handler
            signal.signal(sig, lambda s, _f: loop.call_soon_threadsafe(handler, s))


async def main() -> None:
    """Run the companion until SIGINT/SIGTERM.

    Loads the configuration, connects to chat, posts the word to the
    webhook once a day at the configured time and follows config file edits.

    Raises:
        SystemExit: If a critical error occurs during initialization.
    """
    watcher = None
    app: CompanionApp | None = None
    try:
        print("🚀 Starting Word of the Day companion")
        emit_startup_instructions()
        config_file = config_file_path()
        config = ConfigRepository(config_file).load_or_default()
        store = WordStore(
            config.word_store_file or DEFAULT_WORD_STORE_FILE, config.history_limit
        )
        app = CompanionApp(config, store)
        await app.start()
        watcher = await create_config_watcher(config_file, app.request_config)

        stop_event = asyncio.Event()
        _install_signal_handlers(stop_event)
        await stop_event.wait()
    except asyncio.CancelledError:
        raise
    except KeyboardInterrupt:
        pass
    except Exception as e:
        log_error("Main application error", e)
        sys.exit(1)
    finally:
        if watcher is not None:
            watcher.stop()
        if app is not None:
            await app.stop()
        logging.info("✅ Application shutdown complete")


def health_check() -> int:
    """Validate the configuration file; return a process exit code."""
    logging.info("🏥 Health check mode")
    repo = ConfigRepository(config_file_path())
    if not repo.exists():
        logging.error(f"❌ Health check failed: {repo.path} not found")
        return 1
    config = repo.load()
    if config is None:
        logging.error("❌ Health check failed: configuration is invalid")
        return 1
    mode = "read-only" if not config.token else "read-write"
    logging.info(
        f"✅ Health check passed - channel={config.channel or '-'} mode={mode}"
    )
    return 0


def run() -> None:
    """Synchronous entry point for the application.

    Raises:
        SystemExit: If a critical error occurs during execution.
    """
    if len(sys.argv) > 1 and sys.argv[1] == "--health-check":
        sys.exit(health_check())
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)
    except asyncio.CancelledError:
        sys.exit(0)
    except Exception as e:
        log_error("Top-level error", e)
        sys.exit(1)


if __name__ == "__main__":
    run()
