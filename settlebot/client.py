"""TCP client connecting the bot to the game server.

One connection at a time, one message at a time: a line is read, parsed,
applied (snapshot replace or dispatch) and answered before the next read.
The read is the only await that waits on the server.

Includes:
- Join handshake on every new connection
- Fresh Session (empty state, unknown id) per connection
- Reconnect loop with capped exponential backoff
- Proper writer cleanup in finally block
"""
import argparse
import asyncio
import logging
import random
from typing import Optional

from settlebot.config import (
    BOT_NAME,
    READ_LIMIT_BYTES,
    RECONNECT_MAX_MS,
    RECONNECT_MIN_MS,
    SERVER_HOST,
    SERVER_PORT,
)
from settlebot.dispatcher import Dispatcher
from settlebot.game_logger import GameLogger
from settlebot.game_state import Session
from settlebot.protocol import (
    Command,
    GameMsg,
    ResponseMsg,
    UnknownMsg,
    join_command,
    parse_message,
)
from settlebot.strategy import STRATEGIES, SelectionStrategy, make_strategy

logger = logging.getLogger(__name__)


class BotClient:
    """Plays one seat on the game server, reconnecting whenever it is dropped."""

    def __init__(self, host: str = SERVER_HOST, port: int = SERVER_PORT,
                 name: str = BOT_NAME, strategy: Optional[SelectionStrategy] = None,
                 random_name: bool = False, game_logger: Optional[GameLogger] = None):
        self.host = host
        self.port = port
        self.name = name
        self.random_name = random_name
        self.game_logger = game_logger or GameLogger()
        self.dispatcher = Dispatcher(strategy or make_strategy("random"), self.game_logger)
        self.session: Optional[Session] = None

        self._min_delay = RECONNECT_MIN_MS / 1000.0
        self._max_delay = max(RECONNECT_MAX_MS / 1000.0, self._min_delay)
        self._delay = self._min_delay

    def display_name(self) -> str:
        if self.random_name:
            return f"{self.name}-{random.getrandbits(16):04x}"
        return self.name

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def run_forever(self) -> None:
        """Keep a session alive, reconnecting after every connection loss."""
        while True:
            try:
                await self.run_once()
            except (OSError, asyncio.IncompleteReadError) as e:
                logger.warning(f"Connection lost: {e}")
            await asyncio.sleep(self.next_delay())

    def next_delay(self) -> float:
        """Delay before the next reconnect; grows until a session sees traffic."""
        if self.session is not None and self.session.messages_seen > 0:
            self._delay = self._min_delay
        # the finished session is discarded; the next connection starts a new one
        self.session = None
        delay = self._delay
        self._delay = min(max(self._delay * 2, self._min_delay), self._max_delay)
        logger.info(f"Reconnecting in {delay:.1f}s")
        return delay

    async def run_once(self) -> None:
        """Open one connection and serve it until the server goes away.

        Raises:
            OSError (ConnectionError included) when the connection fails or
            the server closes it.
        """
        reader, writer = await asyncio.open_connection(
            self.host, self.port, limit=READ_LIMIT_BYTES,
        )
        name = self.display_name()
        self.session = Session(name=name)
        self.game_logger.start_session(name)
        logger.info(f"Connected to {self.host}:{self.port} as {name!r}")
        try:
            await self._send(writer, join_command(name))
            await self.serve(reader, writer, self.session)
        finally:
            self.game_logger.end_session()
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as e:
                logger.debug(f"Error while closing connection: {e}")

    async def serve(self, reader: asyncio.StreamReader, writer, session: Session) -> None:
        """Read and answer messages until EOF."""
        while True:
            try:
                line = await reader.readline()
            except ValueError as e:
                # readline drops the over-limit chunk before raising
                logger.warning(f"Discarding oversized line: {e}")
                self.game_logger.log_protocol_event("oversized_line", str(e))
                continue
            if not line:
                raise ConnectionResetError("server closed the connection")
            raw = line.decode("utf-8", errors="replace").strip()
            if not raw:
                continue
            command = self.handle_line(raw, session)
            if command is not None:
                await self._send(writer, command)

    # ------------------------------------------------------------------
    # Message routing
    # ------------------------------------------------------------------

    def handle_line(self, raw: str, session: Session) -> Optional[Command]:
        """Apply one received line to the session; return the reply, if any."""
        msg = parse_message(raw)
        session.messages_seen += 1
        self.game_logger.log_incoming(type(msg).__name__, raw)

        if isinstance(msg, GameMsg):
            session.replace_game(msg.game)
            return None

        if isinstance(msg, ResponseMsg):
            logger.debug(f"<< response {msg.code} {msg.title!r}")
            return self.dispatcher.dispatch(msg, session)

        if isinstance(msg, UnknownMsg):
            logger.info(f"Skipping unrecognized message: {raw[:200]}")
            self.game_logger.log_protocol_event(
                "unknown_message",
                f"Unrecognized message structure: {raw[:200]}",
            )
        return None

    async def _send(self, writer, command: Command) -> None:
        """Write one command line and wait for the transport to drain."""
        logger.info(f">> {command.kind}: {command.payload}")
        writer.write(command.encode())
        await writer.drain()
        self.game_logger.log_outgoing(command.kind, command.payload)


async def main(host: str = SERVER_HOST, port: int = SERVER_PORT, name: str = BOT_NAME,
               strategy: str = "random", seed: Optional[int] = None,
               random_name: bool = False):
    """Start the client and play until interrupted."""
    client = BotClient(
        host=host, port=port, name=name,
        strategy=make_strategy(strategy, seed),
        random_name=random_name,
    )
    logger.info(f"settlebot starting (server={host}:{port}, strategy={strategy})")
    await client.run_forever()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="settlebot game client")
    parser.add_argument("--host", type=str, default=SERVER_HOST,
                        help=f"Game server host (default: {SERVER_HOST})")
    parser.add_argument("--port", type=int, default=SERVER_PORT,
                        help=f"Game server port (default: {SERVER_PORT})")
    parser.add_argument("--name", type=str, default=BOT_NAME,
                        help=f"Display name to join with (default: {BOT_NAME})")
    parser.add_argument("--random-name", action="store_true",
                        help="Append a random suffix to the name on every connection")
    parser.add_argument("--strategy", type=str, default="random",
                        choices=sorted(STRATEGIES),
                        help="Move selection strategy (default: random)")
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for the random strategy")
    parser.add_argument("--log-level", type=str, default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    try:
        asyncio.run(main(
            host=args.host, port=args.port, name=args.name,
            strategy=args.strategy, seed=args.seed,
            random_name=args.random_name,
        ))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
