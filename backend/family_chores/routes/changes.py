"""Websocket feed of committed changes for one family.

Clients pass their bearer token as the ``token`` query parameter since
browsers cannot set headers on websocket upgrades.
"""

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from family_chores.auth import member_id_from_token
from family_chores.crud import get_member
from family_chores.database import async_session
from family_chores.events import bus

logger = logging.getLogger(__name__)

router = APIRouter(tags=["changes"])


async def forward_changes(websocket: WebSocket, queue: asyncio.Queue) -> None:
    """Send queued events until the client hangs up.

    The client is read at the same time as the queue so a disconnect
    ends the subscription even when the family is quiet.
    """
    receiver = asyncio.ensure_future(websocket.receive())
    getter = asyncio.ensure_future(queue.get())
    try:
        while True:
            done, _ = await asyncio.wait(
                {receiver, getter}, return_when=asyncio.FIRST_COMPLETED
            )
            if receiver in done:
                if receiver.result()["type"] == "websocket.disconnect":
                    return
                # clients have nothing to say on this channel
                receiver = asyncio.ensure_future(websocket.receive())
            if getter in done:
                await websocket.send_json(getter.result().to_dict())
                getter = asyncio.ensure_future(queue.get())
    finally:
        receiver.cancel()
        getter.cancel()


@router.websocket("/families/{family_id}/changes")
async def family_changes(websocket: WebSocket, family_id: int, token: str = ""):
    member = None
    member_id = member_id_from_token(token)
    if member_id is not None:
        async with async_session() as db:
            member = await get_member(db, member_id)
    if not member or member.family_id != family_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    queue = bus.subscribe(family_id)
    logger.info("Member %s subscribed to changes for family %s", member.id, family_id)
    try:
        await forward_changes(websocket, queue)
    except WebSocketDisconnect:
        logger.debug("Member %s hung up while an event was being sent", member.id)
    finally:
        bus.unsubscribe(family_id, queue)
        logger.info("Member %s disconnected from family %s changes", member.id, family_id)
