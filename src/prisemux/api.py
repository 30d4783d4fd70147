"""PriseApi - typed wrappers around the server's RPC methods

Methods:
- list_sessions (falls back to list_ptys on failure or an empty roster)
- spawn_pty -> pty id
- attach_pty / resize_pty / detach_pty / detach_ptys / close_pty (requests)
- write_pty (notification)
"""

from typing import Any

from pydantic import BaseModel

from .config import MACOS_OPTION_AS_ALT
from .errors import PriseError, ProtocolError
from .rpc.accessors import as_int
from .rpc.client import RpcClient
from .sessions.directory import Session, parse_list_ptys, parse_list_sessions
from .telemetry import get_logger

logger = get_logger(__name__)


class SpawnPtyParams(BaseModel):
    """Parameters of `spawn_pty`; unset optional fields are not sent."""

    rows: int
    cols: int
    attach: bool = False
    macos_option_as_alt: bool = MACOS_OPTION_AS_ALT
    shell: str | None = None
    cwd: str | None = None
    env: dict[str, str] | None = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class PriseApi:
    """Server calls used by the client; every request is awaitable."""

    def __init__(self, rpc: RpcClient):
        self.rpc = rpc

    async def list_sessions(self) -> list[Session]:
        try:
            sessions = parse_list_sessions(await self.rpc.request("list_sessions", None))
            if sessions:
                return sessions
        except PriseError as e:
            logger.info(f"[Api] list_sessions unavailable ({e}), falling back to list_ptys")
        except TimeoutError as e:
            logger.info(f"[Api] list_sessions timed out ({e}), falling back to list_ptys")

        return parse_list_ptys(await self.rpc.request("list_ptys", None))

    async def spawn_pty(
        self,
        rows: int,
        cols: int,
        shell: str | None = None,
        cwd: str | None = None,
        attach: bool = False,
        env: dict[str, str] | None = None,
        macos_option_as_alt: bool = MACOS_OPTION_AS_ALT,
    ) -> int:
        """Create a PTY on the server.

        Raises:
            ProtocolError: the server returned something other than an id
        """
        params = SpawnPtyParams(
            rows=rows,
            cols=cols,
            attach=attach,
            macos_option_as_alt=macos_option_as_alt,
            shell=shell,
            cwd=cwd,
            env=env,
        )
        result = await self.rpc.request("spawn_pty", params.to_wire())
        pty_id = as_int(result)
        if pty_id is None:
            raise ProtocolError("spawn_pty returned a non-integer id", result)
        logger.info(f"[Api] Spawned pty {pty_id} ({rows}x{cols})")
        return pty_id

    async def attach_pty(self, pty_id: int, macos_option_as_alt: bool = MACOS_OPTION_AS_ALT) -> Any:
        return await self.rpc.request("attach_pty", [pty_id, macos_option_as_alt])

    async def resize_pty(self, pty_id: int, rows: int, cols: int) -> Any:
        return await self.rpc.request("resize_pty", [pty_id, rows, cols])

    def write_pty(self, pty_id: int, data: bytes) -> None:
        self.rpc.notify("write_pty", [pty_id, data])

    async def detach_pty(self, pty_id: int) -> Any:
        return await self.rpc.request("detach_pty", [pty_id])

    async def detach_ptys(self, pty_ids: list[int]) -> Any:
        return await self.rpc.request("detach_ptys", list(pty_ids))

    async def close_pty(self, pty_id: int) -> Any:
        return await self.rpc.request("close_pty", [pty_id])
