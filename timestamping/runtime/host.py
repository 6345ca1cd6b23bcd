"""
timestamping.runtime.host: serial, atomic call execution for contract logic.

The :class:`Host` is the execution substrate the registry runs on. It owns:

- a :class:`~timestamping.state.journal.Journal` over a durable backend,
- the native-value ledger (:class:`~timestamping.runtime.treasury.Treasury`),
- the committed :class:`~timestamping.runtime.events.EventLog`,
- a deterministic block clock (one block per top-level call),
- registries of proof verifiers and recipient receive hooks.

Every mutating call runs inside ``execute``: a journal checkpoint and an event
buffer are opened, attached value moves from the sender to the contract, the
logic runs, and then state and events are committed together or reverted
together. Calls made while another call is running (a receive hook calling
back into a contract) nest as inner checkpoints and see the outer call's
uncommitted state.

Usage
-----
    host = Host()
    host.fund(alice, 10**18)
    receipt = host.execute(registry_addr, lambda f: logic.sign(f, h), sender=alice, method="sign")
    receipt.events[0].name  # b"StampSigned"
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple, TypeVar

from timestamping import logging as tlog
from timestamping.errors import StampError, StateError, TransferRejected
from timestamping.runtime.context import BlockEnv, CallContext, ContextError, to_hex
from timestamping.runtime.events import Event, EventBuffer, EventLog, make_event
from timestamping.runtime.treasury import Treasury
from timestamping.state.backend import MemoryBackend, StorageBackend
from timestamping.state.journal import Journal
from timestamping.state.view import StorageView
from timestamping.types import ADDRESS_LEN, AddressLike, to_address

log = tlog.get_logger(__name__)

T = TypeVar("T")

ZERO_ADDRESS = b"\x00" * ADDRESS_LEN
DEFAULT_GENESIS_TIMESTAMP = 1_700_000_000

#: ``hook(host, sender, amount)``; returning False or raising rejects the value.
ReceiveHook = Callable[["Host", bytes, int], Optional[bool]]


@dataclass(frozen=True)
class Receipt:
    """Outcome of a committed call."""
    return_value: Any
    events: Tuple[Event, ...]
    block: BlockEnv
    trace_id: str

    def named(self, name: bytes) -> Tuple[Event, ...]:
        return tuple(e for e in self.events if e.name == name)


class Frame:
    """
    What contract logic sees while it runs: call context, namespaced storage,
    event emission, outbound value and verifier lookup.
    """

    __slots__ = ("_host", "ctx", "storage", "read_only")

    def __init__(self, host: "Host", ctx: CallContext, storage: StorageView, *, read_only: bool = False) -> None:
        self._host = host
        self.ctx = ctx
        self.storage = storage
        self.read_only = read_only

    @property
    def sender(self) -> bytes:
        return self.ctx.sender

    @property
    def now(self) -> int:
        return self.ctx.now

    def emit(self, name: bytes, **args: Any) -> None:
        if self.read_only:
            raise StateError("event emitted in a read-only call")
        self._host._emit(make_event(name, args, self.ctx.contract))

    def transfer(self, to: bytes, amount: int) -> None:
        """Send ``amount`` of this contract's value to ``to``, running its receive hook."""
        if self.read_only:
            raise StateError("transfer attempted in a read-only call")
        self._host._transfer(self.ctx.contract, to, amount)

    def balance(self) -> int:
        return self._host.treasury.balance_of(self.ctx.contract)

    def resolve_verifier(self, ref: bytes) -> Optional[Any]:
        return self._host.get_verifier(ref)


class Host:
    """
    In-process execution substrate.

    Parameters
    ----------
    backend : StorageBackend | None
        Durable store; defaults to a fresh :class:`MemoryBackend`.
    genesis_timestamp : int
        Timestamp of block 0.
    block_time : int
        Seconds between automatically mined blocks.
    """

    def __init__(
        self,
        backend: Optional[StorageBackend] = None,
        *,
        genesis_timestamp: int = DEFAULT_GENESIS_TIMESTAMP,
        block_time: int = 1,
    ) -> None:
        if block_time < 1:
            raise ContextError("block_time must be >= 1")
        self.backend: StorageBackend = backend if backend is not None else MemoryBackend()
        self.journal = Journal(self.backend)
        self.treasury = Treasury(self.journal)
        self.events = EventLog()
        self._buffer = EventBuffer(self.events)
        self._block = BlockEnv(height=0, timestamp=genesis_timestamp)
        self._block_time = block_time
        self._next_timestamp: Optional[int] = None
        self._call_block: Optional[BlockEnv] = None
        self._verifiers: Dict[bytes, Any] = {}
        self._hooks: Dict[bytes, ReceiveHook] = {}

    # ------------------------------------------------------------------ #
    # Clock
    # ------------------------------------------------------------------ #

    @property
    def block(self) -> BlockEnv:
        """The block currently executing, or the last mined one when idle."""
        return self._call_block or self._block

    @property
    def now(self) -> int:
        return self.block.timestamp

    def set_next_block_timestamp(self, timestamp: int) -> None:
        if timestamp <= self._block.timestamp:
            raise ContextError(
                f"next block timestamp must be greater than {self._block.timestamp}, got {timestamp}"
            )
        self._next_timestamp = timestamp

    def increase_time(self, seconds: int) -> None:
        if seconds < 1:
            raise ContextError("seconds must be >= 1")
        self._next_timestamp = (self._next_timestamp or self._block.timestamp) + seconds

    def mine(self, blocks: int = 1) -> BlockEnv:
        if self.in_call:
            raise StateError("cannot mine while a call is executing")
        for _ in range(blocks):
            ts = self._next_timestamp if self._next_timestamp is not None else self._block.timestamp + self._block_time
            self._next_timestamp = None
            self._block = BlockEnv(height=self._block.height + 1, timestamp=ts)
        return self._block

    # ------------------------------------------------------------------ #
    # Value ledger
    # ------------------------------------------------------------------ #

    @property
    def in_call(self) -> bool:
        return self.journal.depth() > 0

    def balance_of(self, addr: AddressLike) -> int:
        return self.treasury.balance_of(to_address(addr))

    def fund(self, addr: AddressLike, amount: int) -> None:
        """Mint ``amount`` to ``addr`` (local runs and tests)."""
        a = to_address(addr)
        self.journal.begin()
        try:
            self.treasury.credit(a, amount)
        except StampError:
            self.journal.revert()
            raise
        self.journal.commit()

    def set_receive_hook(self, addr: AddressLike, hook: Optional[ReceiveHook]) -> None:
        """Install (or with None, remove) the code that runs when ``addr`` receives value."""
        a = to_address(addr)
        if hook is None:
            self._hooks.pop(a, None)
        else:
            self._hooks[a] = hook

    def _transfer(self, frm: bytes, to: bytes, amount: int) -> None:
        self.treasury.move(frm, to, amount)
        hook = self._hooks.get(to)
        if hook is None:
            return
        try:
            accepted = hook(self, frm, amount)
        except StampError as e:
            raise TransferRejected(to=to, amount=amount, data={"cause": e.code}) from e
        except Exception as e:
            raise TransferRejected(to=to, amount=amount, data={"cause": type(e).__name__}) from e
        if accepted is False:
            raise TransferRejected(to=to, amount=amount)
        log.debug("value delivered", extra={"to": to, "amount": amount})

    # ------------------------------------------------------------------ #
    # Verifiers
    # ------------------------------------------------------------------ #

    def register_verifier(self, ref: bytes, verifier: Any) -> bytes:
        """Bind ``ref`` to a verifier object (anything with ``verify(proof, public_inputs)``)."""
        if not isinstance(ref, (bytes, bytearray)) or not ref:
            raise ValueError("verifier reference must be non-empty bytes")
        if not callable(getattr(verifier, "verify", None)):
            raise TypeError("verifier must expose verify(proof, public_inputs)")
        self._verifiers[bytes(ref)] = verifier
        return bytes(ref)

    def get_verifier(self, ref: bytes) -> Optional[Any]:
        return self._verifiers.get(bytes(ref))

    # ------------------------------------------------------------------ #
    # Execution
    # ------------------------------------------------------------------ #

    def _emit(self, event: Event) -> None:
        self._buffer.emit(event)

    def execute(
        self,
        contract: AddressLike,
        fn: Callable[[Frame], T],
        *,
        sender: AddressLike,
        value: int = 0,
        method: str = "call",
    ) -> Receipt:
        """
        Run ``fn`` atomically against ``contract``'s storage as ``sender``.

        A top-level call mines a new block first. On any exception the
        journal checkpoint and event buffer are discarded and the exception
        propagates unchanged.
        """
        caddr, saddr = to_address(contract), to_address(sender)
        top = not self.in_call
        block = self.mine() if top else self.block

        with tlog.trace_scope() as trace_id:
            tlog.bind(contract=to_hex(caddr), method=method, sender=to_hex(saddr), height=block.height)
            depth = self.journal.begin()
            self._buffer.begin()
            if top:
                self._call_block = block
            try:
                ctx = CallContext(sender=saddr, contract=caddr, value=value, block=block, depth=depth)
                log.debug("call start", extra={"value": value, "depth": depth})
                self.treasury.move(saddr, caddr, value)
                result = fn(Frame(self, ctx, StorageView(self.journal, caddr)))
            except Exception as e:
                self.journal.revert()
                self._buffer.revert()
                log.info(
                    "call reverted",
                    extra={"code": getattr(e, "code", type(e).__name__), "depth": depth},
                )
                raise
            else:
                self.journal.commit()
                emitted = self._buffer.commit()
                log.debug("call committed", extra={"events": len(emitted), "depth": depth})
            finally:
                if top:
                    self._call_block = None

        return Receipt(return_value=result, events=tuple(emitted), block=block, trace_id=trace_id)

    def view(
        self,
        contract: AddressLike,
        fn: Callable[[Frame], T],
        *,
        sender: AddressLike = ZERO_ADDRESS,
    ) -> T:
        """
        Run ``fn`` read-only. No block is mined and writes, events or
        transfers raise :class:`StateError`. Inside a running call the view
        observes that call's uncommitted state.
        """
        ctx = CallContext(
            sender=to_address(sender),
            contract=to_address(contract),
            value=0,
            block=self.block,
            depth=self.journal.depth(),
        )
        return fn(Frame(self, ctx, StorageView(self.journal, ctx.contract, read_only=True), read_only=True))


__all__ = ["Host", "Frame", "Receipt", "ReceiveHook", "ZERO_ADDRESS", "DEFAULT_GENESIS_TIMESTAMP"]
