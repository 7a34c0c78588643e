from __future__ import annotations

from typing import TYPE_CHECKING, Any

from game.logic.settings import TOTAL_ROUNDS
from game.messaging.types import SessionMessageType
from game.tests.helpers.waiting import wait_until

if TYPE_CHECKING:
    from game.session.manager import SessionManager
    from game.tests.mocks import MockConnection


async def wait_for_message(connection: MockConnection, message_type: str, count: int = 1) -> dict[str, Any]:
    """Wait for the ``count``-th message of a type and return it."""
    await wait_until(lambda: len(connection.messages_of_type(message_type)) >= count)
    return connection.messages_of_type(message_type)[count - 1]


async def reach_verification(
    manager: SessionManager,
    connection: MockConnection,
    player_id: str = "player-0001",
) -> str:
    """Start a session and wait out the queue. Returns the issued code."""
    await manager.start_session(connection, player_id)
    message = await wait_for_message(connection, SessionMessageType.VERIFICATION_CODE)
    return message["code"]


async def play_rounds(manager: SessionManager, connection: MockConnection) -> dict[str, Any]:
    """Tap both open seats in every round and return the game_finished message."""
    for round_index in range(1, TOTAL_ROUNDS + 1):
        opened = await wait_for_message(connection, SessionMessageType.SEATS_OPENED, round_index)
        for seat_id in opened["seat_ids"]:
            await manager.tap_seat(connection, seat_id)
    return await wait_for_message(connection, SessionMessageType.GAME_FINISHED)


async def play_to_finish(
    manager: SessionManager,
    connection: MockConnection,
    player_id: str = "player-0001",
) -> dict[str, Any]:
    code = await reach_verification(manager, connection, player_id)
    await manager.submit_verification(connection, code)
    return await play_rounds(manager, connection)
