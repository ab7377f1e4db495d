"""Composition root for a staff client (the server's is main.py)."""
import asyncio
import logging

from cafeops.application.notifications import SeenTracker
from cafeops.application.orchestrator import StaffOrchestrator
from cafeops.application.sync_loop import StaffSession, SyncLoop
from cafeops.infrastructure.http_order_store import HttpOrderStore
from cafeops.infrastructure.seen_store import build_seen_store

logger = logging.getLogger(__name__)


def build_staff_client(staff_id: int, store=None, directory=None, seen_store=None,
                       interval=None) -> StaffOrchestrator:
    store = store or HttpOrderStore()
    # HttpOrderStore serves both the order and the staff endpoints
    directory = directory or store
    session = StaffSession.open(directory, staff_id)
    tracker = SeenTracker(seen_store or build_seen_store(), staff_id)
    loop = SyncLoop(store, directory, session, tracker, interval)
    return StaffOrchestrator(store, directory, session, tracker, loop)


async def run_staff_client(orchestrator: StaffOrchestrator, stop_event: asyncio.Event) -> None:
    logger.info(f"Staff client for {orchestrator.session.staff.identity_ref} "
                f"({orchestrator.session.staff.role.value}) running")
    await orchestrator.loop.run(stop_event)
