"""
Shared test fixtures for pytest
"""

import asyncio
import itertools
from contextlib import asynccontextmanager
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from core.idempotency import IdempotencyKeyGenerator
from core.session_orchestrator import SessionOrchestrator
from gameapi.protocol import GameSessionProtocol
from ledger.confirmation_waiter import ConfirmationOutcome, ConfirmationWaiter
from ledger.rpc import TransactionStatus
from ledger.transfer_client import LedgerTransferClient
from models.api import GameConfig, GameResponse
from services import cleanup_logging, setup_logging

MANAGER_ADDRESS = "MgrWa11et1111111111111111111111111111111111"
PLAYER_ADDRESS = "P1ayerWa11et111111111111111111111111111111"
TEST_MINT = "A7DRJdbf6zwjY3wwmecUpiGHqvzcWjcLsJWGe52rj7WL"


@pytest.fixture(autouse=True, scope="session")
def setup_test_logging(tmp_path_factory):
    """Setup logging for all tests"""
    setup_logging({"log_dir": str(tmp_path_factory.mktemp("logs")), "console_output": False})
    yield
    cleanup_logging()


class FakeWallet:
    """Wallet double recording every instruction it signs."""

    def __init__(self, public_address: str | None = PLAYER_ADDRESS, refs=None, error=None):
        self.public_address = public_address
        self.refs = list(refs or ["tx1"])
        self.error = error
        self.instructions = []

    async def sign_and_submit(self, instruction) -> str:
        self.instructions.append(instruction)
        if self.error is not None:
            raise self.error
        return self.refs.pop(0) if len(self.refs) > 1 else self.refs[0]


class FakeLedger:
    """
    Ledger double.

    statuses is consumed one entry per poll (the last entry repeats); an
    Exception entry is raised instead of returned.
    """

    def __init__(self, statuses=None, accounts=None, poll_delay: float = 0.0):
        self.statuses = list(statuses or [TransactionStatus(included=False)])
        self.accounts = dict(accounts or {})
        self.poll_delay = poll_delay
        self.polls = 0
        self.lookups = []

    async def get_transaction_status(self, transaction_ref: str) -> TransactionStatus:
        self.polls += 1
        if self.poll_delay:
            await asyncio.sleep(self.poll_delay)
        index = min(self.polls - 1, len(self.statuses) - 1)
        status = self.statuses[index]
        if isinstance(status, Exception):
            raise status
        return status

    async def find_token_account(self, owner: str, mint: str) -> str | None:
        self.lookups.append((owner, mint))
        value = self.accounts.get(owner)
        if isinstance(value, Exception):
            raise value
        return value


def included_after(n: int) -> list[TransactionStatus]:
    """Statuses that report inclusion from poll #n onwards."""
    return [TransactionStatus(included=False)] * (n - 1) + [
        TransactionStatus(included=True, confirmation_status="confirmed")
    ]


def game_response(session_id="s1", status="playing", game_state=None, result=None, game_type="blackjack"):
    data = {
        "sessionId": session_id,
        "gameType": game_type,
        "betAmount": "5",
        "status": status,
        "gameState": game_state if game_state is not None else {"hand": ["K", "7"]},
    }
    if result is not None:
        data["result"] = result
    return GameResponse.model_validate(data)


@pytest.fixture
def wallet():
    return FakeWallet()


@pytest.fixture
def game_config():
    """Bounds used by the reference scenarios (min 1, max 100)"""
    return GameConfig(min_bet=Decimal("1"), max_bet=Decimal("100"))


@pytest.fixture
def transfer_client():
    client = MagicMock(spec=LedgerTransferClient)
    client.submit_transfer = AsyncMock(return_value="tx1")
    return client


@pytest.fixture
def confirmation_waiter():
    waiter = MagicMock(spec=ConfirmationWaiter)
    waiter.await_finality = AsyncMock(return_value=ConfirmationOutcome.CONFIRMED)
    return waiter


@pytest.fixture
def protocol():
    proto = MagicMock(spec=GameSessionProtocol)
    proto.create_session = AsyncMock(return_value=game_response())
    proto.submit_move = AsyncMock(return_value=game_response(game_state={"hand": ["K", "7", "2"]}))
    proto.fetch_session = AsyncMock()
    proto.cancel_session = AsyncMock(return_value=True)
    return proto


@pytest.fixture
def make_orchestrator(wallet, transfer_client, confirmation_waiter, protocol, game_config):
    """Factory for orchestrators over mocked collaborators"""

    def _make(game_kind="blackjack", **overrides):
        kwargs = dict(
            game_kind=game_kind,
            wallet=wallet,
            transfer_client=transfer_client,
            confirmation_waiter=confirmation_waiter,
            protocol=protocol,
            recipient_address=MANAGER_ADDRESS,
            game_config=game_config,
            token_kind=TEST_MINT,
            token_decimals=9,
            confirmation_timeout_ms=30000,
            device_fingerprint="fp-test",
            key_generator=IdempotencyKeyGenerator(),
        )
        kwargs.update(overrides)
        return SessionOrchestrator(**kwargs)

    return _make


@pytest.fixture
def orchestrator(make_orchestrator):
    return make_orchestrator()


@pytest.fixture
def make_wallet():
    return FakeWallet


@pytest.fixture
def make_ledger():
    return FakeLedger


@pytest.fixture
def make_response():
    return game_response


@pytest.fixture
def statuses_included_after():
    return included_after


class FakeBackend:
    """
    In-process game service speaking the {success, data, message, error}
    envelope.

    Blackjack sessions stay in play until a "stand" move; every other game
    settles on its first play request. Settled sessions are stored the way
    the service persists them: the result has no isWin and the win lives in
    the top-level outcome. Queue a canned reply for the next request to a
    path with fail_next() or reply_next().
    """

    SUPPORTED = [
        {"gameType": "blackjack", "config": {"minBet": "1", "maxBet": "100", "baseMultiplier": "2"}},
        {"gameType": "dice", "config": {"minBet": "1", "maxBet": "50", "autoResolve": True}},
    ]

    def __init__(self, token: str | None = None):
        self.token = token
        self.sessions: dict[str, dict] = {}
        self.requests: list[dict] = []
        self.canned: dict[str, tuple[int, dict]] = {}
        self._ids = itertools.count(1)

    def fail_next(self, path: str, status: int, **envelope):
        self.canned[path] = (status, {"success": False, **envelope})

    def reply_next(self, path: str, data, status: int = 200):
        self.canned[path] = (status, {"success": True, "data": data})

    def app(self) -> web.Application:
        app = web.Application(middlewares=[self._middleware])
        app.router.add_get("/api/games/supported", self.supported)
        app.router.add_post("/api/games/create", self.create)
        app.router.add_post("/api/games/play", self.play)
        app.router.add_get("/api/games/session/{session_id}", self.session)
        app.router.add_post("/api/games/cancel/{session_id}", self.cancel)
        app.router.add_get("/api/games/history", self.history)
        return app

    @web.middleware
    async def _middleware(self, request, handler):
        body = await request.json() if request.can_read_body else None
        self.requests.append(
            {
                "method": request.method,
                "path": request.path,
                "query": dict(request.query),
                "headers": dict(request.headers),
                "json": body,
            }
        )
        request["body"] = body
        if self.token and request.headers.get("Authorization") != f"Bearer {self.token}":
            return web.json_response({"success": False, "error": "Unauthorized"}, status=401)
        canned = self.canned.pop(request.path, None)
        if canned is not None:
            status, envelope = canned
            return web.json_response(envelope, status=status)
        return await handler(request)

    @staticmethod
    def ok(data, status=200):
        return web.json_response({"success": True, "data": data}, status=status)

    @staticmethod
    def error(status, message):
        return web.json_response({"success": False, "error": message}, status=status)

    def paths(self, method: str | None = None) -> list[str]:
        return [r["path"] for r in self.requests if method is None or r["method"] == method]

    async def supported(self, request):
        return self.ok(self.SUPPORTED)

    async def create(self, request):
        body = request["body"] or {}
        if not body.get("depositTxHash"):
            return self.error(400, "Deposit transaction is required")
        session_id = f"sess-{next(self._ids)}"
        session = {
            "sessionId": session_id,
            "gameType": body["gameType"],
            "betAmount": body["betAmount"],
            "status": "playing",
            "gameState": {"moves": []},
            "serverSeedHash": "ab" * 32,
        }
        self.sessions[session_id] = session
        return self.ok(session, status=201)

    async def play(self, request):
        body = request["body"] or {}
        session = self.sessions.get(body.get("sessionId"))
        if session is None:
            return self.error(404, "Game session not found")
        if session["status"] in ("completed", "cancelled"):
            return self.error(409, "Game session is already finished")

        move = body.get("move")
        session["gameState"] = {"moves": session["gameState"]["moves"] + [move]}
        if session["gameType"] != "blackjack" or move is None or move.get("action") == "stand":
            session["status"] = "completed"
            session["outcome"] = "win"
            session["result"] = {"winAmount": 10, "multiplier": 2, "gameData": None}
            return self.ok({**session, "result": {**session["result"], "isWin": True}})
        return self.ok(session)

    async def session(self, request):
        session = self.sessions.get(request.match_info["session_id"])
        if session is None:
            return self.error(404, "Game session not found")
        return self.ok(session)

    async def cancel(self, request):
        session = self.sessions.get(request.match_info["session_id"])
        if session is None:
            return self.error(404, "Game session not found")
        if session["status"] in ("completed", "cancelled"):
            return self.ok({"cancelled": False})
        session["status"] = "cancelled"
        return self.ok({"cancelled": True})

    async def history(self, request):
        sessions = list(self.sessions.values())
        game_type = request.query.get("gameType")
        if game_type:
            sessions = [s for s in sessions if s["gameType"] == game_type]
        limit = int(request.query.get("limit", len(sessions)))
        return self.ok(sessions[:limit])


@pytest.fixture
def running_backend():
    """
    Async context manager factory yielding (backend, base_url).

    Usage:
        async with running_backend() as (backend, base_url): ...
    """

    @asynccontextmanager
    async def _run(token: str | None = None):
        backend = FakeBackend(token=token)
        server = TestServer(backend.app())
        await server.start_server()
        try:
            yield backend, str(server.make_url("/api"))
        finally:
            await server.close()

    return _run
