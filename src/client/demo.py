#!/usr/bin/env python3
"""
Demo Script for the Bridge

This script drives a scripted session through the BridgeService against
the in-process loopback engine, or against a native bridge when
--bridge-url is given. It can be run standalone to check the bridge
without starting the terminal UI.

Usage:
    python -m client.demo
    python -m client.demo --scenario plugins
    python -m client.demo --bridge-url ws://localhost:8765
"""

import asyncio
import argparse
import logging
from typing import Optional

from bridge import (
    BackendResolver,
    BridgeConfig,
    BridgeService,
    ColorSchemeMonitor,
    PluginManager,
    SettingsState,
    StyleSurface,
    ThemeChoice,
    ThemeController,
)
from bridge.loopback import CatalogEntry, WaddleCore
from bridge.schemas import GUI_METADATA

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

DEMO_CATALOG = {
    "echo-bot": CatalogEntry(
        name="Echo Bot", versions=["1.0", "1.1"], capabilities=[GUI_METADATA]
    ),
    "weather": CatalogEntry(name="Weather", versions=["0.3"]),
}


async def _seeded_engine(module_name: str) -> WaddleCore:
    """Engine loader returning a loopback core with demo data."""
    core = await WaddleCore.init(catalog=DEMO_CATALOG)
    core.add_contact("alice@example.org", name="Alice", groups=["Friends"])
    core.add_contact("bob@example.org", name="Bob", presence="away")
    for index in range(5):
        core.receive_message("alice@example.org", f"Hello #{index}")
    return core


def build_service(bridge_url: Optional[str]) -> BridgeService:
    config = BridgeConfig.from_env()
    config.bridge_url = bridge_url
    resolver = BackendResolver(config=config, engine_loader=_seeded_engine)
    return BridgeService(resolver=resolver)


async def demo_chat(service: BridgeService):
    """
    Demonstrate roster, messaging and history paging.

    This function shows:
    1. Fetching the roster
    2. Sending a message and receiving the sent event
    3. Paging history backwards with a cursor
    """
    logger.info("=" * 60)
    logger.info("Bridge Demo - Chat")
    logger.info("=" * 60)

    unlisten = await service.listen(
        "xmpp.message.sent",
        lambda event: logger.info(f"  event: sent {event.payload['body']!r}"),
    )

    roster = await service.get_roster()
    logger.info(f"\nRoster ({len(roster)} contacts):")
    for item in roster:
        logger.info(f"  {item.name} <{item.jid}> {item.presence}")

    message = await service.send_message("alice@example.org", "Hi Alice!")
    logger.info(f"\nSent message {message.id} at {message.sent_at}")
    unlisten()

    page = await service.get_history("alice@example.org", 3)
    logger.info("\nLatest history page:")
    for entry in page:
        logger.info(f"  {entry.from_jid}: {entry.body}")

    if page:
        older = await service.get_history("alice@example.org", 3, page[0].id)
        logger.info("\nOlder history page:")
        for entry in older:
            logger.info(f"  {entry.from_jid}: {entry.body}")

    await service.join_room("lobby@conference.example.org", "demo")
    await service.send_message("lobby@conference.example.org", "Hello room")
    await service.leave_room("lobby@conference.example.org")
    logger.info("\nJoined, greeted and left lobby@conference.example.org")


async def demo_plugins(service: BridgeService):
    """Demonstrate plugin install, failure, update and removal."""
    logger.info("=" * 60)
    logger.info("Bridge Demo - Plugins")
    logger.info("=" * 60)

    manager = PluginManager(service)

    info = await manager.install("echo-bot@1.0")
    logger.info(f"\nInstalled {info.id} {info.version}: {info.status.value}")

    view = await manager.describe("echo-bot")
    for point in view.extensions:
        logger.info(f"  extension {point.component} -> #{point.container}")

    failed = await manager.install("missing-plugin")
    logger.info(
        f"\nInstall of missing-plugin: {failed.status.value} "
        f"({failed.error_reason}, {failed.error_count} error(s))"
    )

    updated = await manager.update("echo-bot")
    logger.info(f"\nUpdated {updated.id} to {updated.version}")

    removed = await manager.uninstall("echo-bot")
    logger.info(f"Uninstalled {removed.id}: {removed.status.value}")


async def demo_theme(service: BridgeService):
    """Demonstrate theme resolution on a render surface."""
    logger.info("=" * 60)
    logger.info("Bridge Demo - Theme")
    logger.info("=" * 60)

    settings = SettingsState()
    await settings.load(service)
    surface = StyleSurface()
    color_scheme = ColorSchemeMonitor(dark=False)
    controller = ThemeController(service, settings, surface, color_scheme)
    await controller.start()
    logger.info(f"\nChoice {settings.theme.value}: {surface.get('--waddle-bg')}")

    color_scheme.set_dark(True)
    logger.info(f"OS switched to dark: {surface.get('--waddle-bg')}")

    settings.theme = ThemeChoice.LIGHT
    logger.info(f"Explicit light: {surface.get('--waddle-bg')}")

    controller.stop()


async def run_demo(scenario: str, bridge_url: Optional[str]):
    service = build_service(bridge_url)
    try:
        if scenario in ("chat", "all"):
            await demo_chat(service)
        if scenario in ("plugins", "all"):
            await demo_plugins(service)
        if scenario in ("theme", "all"):
            await demo_theme(service)
    finally:
        await service.close()

    logger.info("\n" + "=" * 60)
    logger.info("Demo completed successfully!")
    logger.info("=" * 60)


def main():
    """Main entry point for the demo."""
    parser = argparse.ArgumentParser(
        description="Run a scripted session through the chat shell bridge"
    )
    parser.add_argument(
        "--scenario",
        choices=["chat", "plugins", "theme", "all"],
        default="all",
        help="Which part of the demo to run",
    )
    parser.add_argument(
        "--bridge-url",
        default=None,
        help="Native bridge URL (default: in-process loopback engine)",
    )

    args = parser.parse_args()
    asyncio.run(run_demo(args.scenario, args.bridge_url))


if __name__ == "__main__":
    main()
