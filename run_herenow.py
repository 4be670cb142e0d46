#!/usr/bin/env python3
"""
HereNow service
===============

Runs one HereNow instance on an asyncio loop:

    daily event state     cache, ad-watch unlock, reveal reminder
    geofences             fed by position samples sent as commands
    notifications         scheduled, repeated, delivered to a presenter
    control               MQTT commands in, replies and status out

Usage:
    herenow --config config/herenow.example.yaml
    herenow --config config/herenow.example.yaml --no-log-file

Exits on SIGINT/SIGTERM after the control plane publishes "stopped".
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from herenow_app import AppConfig, HereNowService, build_context
from herenow_control import MQTTControlPlane
from herenow_geofence import ManualPositionSource
from herenow_logging import create_logger
from herenow_notify import AsyncioTimerQueue, MemoryPresenter, MQTTPresenter
from herenow_notify.presenters import BasePresenter
from herenow_store import JsonFileBackend, MemoryBackend, SystemClock


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

log = logging.getLogger("herenow")


def setup_logging(log_file: Optional[Path] = None) -> None:
    """Root handlers: stdout always, plus log_file when given."""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, handlers=handlers)


def create_presenter(config: AppConfig) -> BasePresenter:
    if config.notifications.presenter == "memory":
        return MemoryPresenter()

    mqtt_config = config.mqtt
    return MQTTPresenter(
        broker_host=mqtt_config.broker,
        broker_port=mqtt_config.port,
        topic=mqtt_config.topic("notification", config.service_id),
        client_id=f"herenow_{config.service_id}_notifications",
        logger=create_logger("presenter"),
        username=mqtt_config.username,
        password=mqtt_config.password,
        qos=mqtt_config.qos,
    )


def create_control_plane(config: AppConfig, loop: asyncio.AbstractEventLoop) -> MQTTControlPlane:
    mqtt_config = config.mqtt
    sid = config.service_id
    return MQTTControlPlane(
        broker_host=mqtt_config.broker,
        broker_port=mqtt_config.port,
        command_topic=mqtt_config.topic("command", sid),
        status_topic=mqtt_config.topic("status", sid),
        reply_topic=mqtt_config.topic("reply", sid),
        client_id=f"herenow_{sid}_control",
        username=mqtt_config.username,
        password=mqtt_config.password,
        dispatch=loop.call_soon_threadsafe,
    )


class HereNowApp:
    """Wires config into a running HereNowService and owns its shutdown."""

    def __init__(self, config: AppConfig):
        self.config = config
        self.presenter: Optional[BasePresenter] = None
        self.service: Optional[HereNowService] = None

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self.request_stop, sig)
            except NotImplementedError:
                # Windows event loops
                signal.signal(sig, lambda signum, frame: self.request_stop(signum))

    def request_stop(self, signum) -> None:
        log.info(f"🛑 {signal.Signals(signum).name} received, stopping")
        if self.service:
            self.service.stop()

    async def serve(self) -> None:
        loop = asyncio.get_running_loop()
        config = self.config

        self.presenter = create_presenter(config)
        if isinstance(self.presenter, MQTTPresenter) and not self.presenter.connect():
            log.warning("⚠️ Notification broker unavailable; deliveries will report no_permission")

        storage = config.storage
        context = build_context(
            clock=SystemClock(),
            backend=JsonFileBackend(storage.path) if storage.path else MemoryBackend(),
            source=ManualPositionSource(),
            timers=AsyncioTimerQueue(loop),
            presenter=self.presenter,
            namespace=storage.namespace,
            location_options=config.location.to_options(),
            ads_required=config.daily_event.ads_required,
            reveal_time=config.daily_event.reveal_time_value(),
            default_icon=config.notifications.default_icon,
        )
        log.info(f"📦 Storage available: {context.store.available}")

        self.service = HereNowService(config, context, create_control_plane(config, loop))
        self.service.setup()
        self._install_signal_handlers(loop)

        try:
            await self.service.serve()
        finally:
            if isinstance(self.presenter, MQTTPresenter):
                self.presenter.disconnect()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="HereNow daily event and location-aware notification service",
    )
    parser.add_argument('--config', type=Path, required=True,
                        help='Service configuration YAML')
    parser.add_argument('--log-file', type=Path, default=Path('logs/herenow.log'),
                        help='Log file (default: logs/herenow.log)')
    parser.add_argument('--no-log-file', action='store_true',
                        help='Log to the console only')
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(None if args.no_log_file else args.log_file)

    try:
        config = AppConfig.from_yaml(args.config)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    log.info(f"🚀 HereNow {config.service_id} starting ({len(config.regions)} regions)")
    asyncio.run(HereNowApp(config).serve())
    log.info("✅ HereNow stopped")
    return 0


if __name__ == '__main__':
    sys.exit(main())
