#!/usr/bin/env python3
"""
Usage:
    main.py [--configuration-file FILE] [--roster-file FILE]

Options:
    --configuration-file FILE    Load config variables from FILE
    --roster-file FILE           Load participants from FILE instead of the
                                 configured ROSTER_FILE
"""

import asyncio
import logging
import os
import platform
import signal
import sys
import time
from datetime import datetime, timezone

import humanize
from docopt import docopt
from prometheus_client import start_http_server

import squadmatch
from squadmatch.config import config
from squadmatch.exceptions import ConfigurationError, RosterError


async def main(roster_file=None):
    global startup_time, shutdown_time

    version = os.environ.get("VERSION") or "dev"
    python_version = platform.python_version()

    logger.info(
        "Matchmaking server %s (Python %s) on %s",
        version,
        python_version,
        sys.platform
    )

    loop = asyncio.get_running_loop()
    done = loop.create_future()

    logger.info("Event loop: %s", loop)

    def signal_handler(sig: int, _frame):
        logger.info(
            "Received signal %s, shutting down",
            signal.Signals(sig)
        )
        if not done.done():
            done.set_result(0)

    # Make sure we can shutdown gracefully
    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    instance = squadmatch.ServerInstance("MatchmakingServer", roster_file)

    try:
        await instance.start_services()
    except RosterError:
        logger.exception("Could not load the participant roster")
        await instance.shutdown()
        return 1

    ctrl_server = await squadmatch.run_control_server(instance)

    async def restart_control_server():
        nonlocal ctrl_server

        await ctrl_server.shutdown()
        ctrl_server = await squadmatch.run_control_server(instance)
    config.register_callback("CONTROL_SERVER_PORT", restart_control_server)

    if config.ENABLE_METRICS:
        logger.info("Using prometheus on port: %i", config.METRICS_PORT)
        start_http_server(config.METRICS_PORT)

    squadmatch.metrics.info.info({
        "version": version,
        "python_version": python_version,
        "start_time": datetime.now(timezone.utc).strftime("%m-%d %H:%M"),
    })
    logger.info(
        "Server started in %0.2f seconds",
        time.perf_counter() - startup_time
    )

    exit_code = await done

    shutdown_time = time.perf_counter()

    # Cleanup
    await instance.shutdown()
    await ctrl_server.shutdown()

    return exit_code


if __name__ == "__main__":
    startup_time = time.perf_counter()
    shutdown_time = None

    args = docopt(__doc__, version="squadmatch")
    config_file = args.get("--configuration-file")
    if config_file:
        os.environ["CONFIGURATION_FILE"] = config_file

    logger = logging.getLogger()
    stderr_handler = logging.StreamHandler()
    stderr_handler.setFormatter(
        logging.Formatter(
            fmt="%(levelname)-8s %(asctime)s %(name)-30s %(message)s",
            datefmt="%b %d  %H:%M:%S"
        )
    )
    logger.addHandler(stderr_handler)
    logger.setLevel(logging.INFO)

    config.refresh()
    try:
        config.validate()
    except ConfigurationError as e:
        logger.error("Invalid configuration: %s", e)
        exit(2)
    logger.setLevel(config.LOG_LEVEL)

    if config.USE_UVLOOP:
        import uvloop
        asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())

    exit_code = asyncio.run(main(args.get("--roster-file")))

    stop_time = time.perf_counter()
    logger.info(
        "Total server uptime: %s",
        humanize.naturaldelta(stop_time - startup_time)
    )

    if shutdown_time is not None:
        logger.info(
            "Server shut down in %0.2f seconds",
            stop_time - shutdown_time
        )

    if exit_code:
        logger.error("Server shut down with exit code: %s", exit_code)

    exit(exit_code)
