"""Bootstrap - builds and wires the client components

Responsibilities:
- create the EventQueue, RpcClient, ConnectionManager, PriseApi, MuxClient
- route RPC notifications and connection lifecycle events into the queue
- return ClientComponents to the caller

Not responsible for:
- raw terminal mode, key capture and screen output (the UI shell)
- choosing the socket path (config.default_socket_path)
"""

from dataclasses import dataclass

from ..api import PriseApi
from ..connection.manager import ConnectionManager, Opener, open_unix
from ..core.ids import IdAllocator
from ..core.queue import EventQueue
from ..errors import ConnectError
from ..rpc.client import RpcClient
from ..telemetry import get_logger
from .client import MuxClient

logger = get_logger(__name__)


@dataclass
class ClientComponents:
    """Everything bootstrap() builds, for the UI shell and for tests."""

    inbox: EventQueue
    rpc: RpcClient
    connection: ConnectionManager
    api: PriseApi
    client: MuxClient

    async def start(self, address: str | None = None) -> None:
        """Connect and load the session roster.

        Raises:
            ConnectError: the server is not reachable
        """
        try:
            await self.connection.connect(address)
        except ConnectError as e:
            self.client.set_status(f"Connection failed: {e}")
            raise
        self.client.set_status("Connected")
        await self.client.refresh_sessions()
        logger.info("[Bootstrap] Client started")

    async def run(self, address: str | None = None) -> BaseException | None:
        """start(), then consume events until the client stops."""
        await self.start(address)
        try:
            return await self.client.run()
        finally:
            await self.connection.close()

    async def stop(self) -> None:
        self.client.stop()
        await self.connection.close()
        logger.info("[Bootstrap] Client stopped")


def bootstrap(opener: Opener = open_unix, ids: IdAllocator | None = None) -> ClientComponents:
    """Build a fully wired, not yet connected client.

    Args:
        opener: transport factory (replaced in tests)
        ids: pane/tab id source

    Returns:
        ClientComponents
    """
    inbox = EventQueue()
    rpc = RpcClient(inbox=inbox)
    connection = ConnectionManager(rpc, inbox=inbox, opener=opener)
    api = PriseApi(rpc)
    client = MuxClient(api, inbox, ids=ids)

    logger.info("[Bootstrap] Components created")
    return ClientComponents(inbox=inbox, rpc=rpc, connection=connection, api=api, client=client)
