import os
import pytest
from fastapi.testclient import TestClient

# Set test database before any imports
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

from app.main import create_app
from app.config import get_settings
from app.intent import conversation, verification
from api.deps import get_integration, get_transfer_executor_factory
from db.base import Base
from db.session import engine
from wallet.provider import WalletRPCError
from wallet.transfer import TransferExecutor


USER = "0x1111111111111111111111111111111111111111"
RECIPIENT = "0x2222222222222222222222222222222222222222"
TX_HASH = "0x" + "ab" * 32


class FakeIntegration:
    """Records every call; answers succeed unless overridden in `responses`."""

    def __init__(self):
        self.calls = []
        self.responses = {}
        self.held = ["CELO", "USDC"]

    def _answer(self, name, *args, default=None):
        self.calls.append((name, args))
        response = self.responses.get(name)
        if isinstance(response, Exception):
            raise response
        if response is not None:
            return response
        return default if default is not None else {"success": True, "transactionHash": f"0x{name}"}

    def deposit(self, chain_id, token, amount):
        return self._answer("deposit", chain_id, token, amount)

    def withdraw(self, chain_id, token, amount):
        return self._answer("withdraw", chain_id, token, amount)

    def borrow(self, chain_id, token, amount):
        return self._answer("borrow", chain_id, token, amount)

    def repay(self, chain_id, token, amount):
        return self._answer("repay", chain_id, token, amount)

    def stake(self, chain_id, pool_id, amount):
        return self._answer("stake", chain_id, pool_id, amount)

    def unstake(self, chain_id, pool_id, amount):
        return self._answer("unstake", chain_id, pool_id, amount)

    def claim_rewards(self, chain_id, pool_id):
        return self._answer("claim_rewards", chain_id, pool_id)

    def emergency_withdraw(self, chain_id, pool_id):
        return self._answer("emergency_withdraw", chain_id, pool_id)

    def create_pool(self, chain_id, token):
        return self._answer("create_pool", chain_id, token)

    def list_token(self, chain_id, token):
        return self._answer("list_token", chain_id, token)

    def set_token_price(self, chain_id, token, price):
        return self._answer("set_token_price", chain_id, token, price)

    def get_token_balance(self, chain_id, token, owner=None):
        return self._answer(
            "get_token_balance",
            chain_id,
            token,
            owner,
            default={
                "success": True,
                "balance": "25000000000000000000",
                "formatted": "25",
                "token": token.upper(),
            },
        )

    def get_pool_information(self, chain_id):
        return self._answer(
            "get_pool_information",
            chain_id,
            default={"success": True, "poolCount": 2, "pools": [{"isActive": True}, {"isActive": False}]},
        )

    def get_user_pool_info(self, chain_id, owner=None):
        return self._answer("get_user_pool_info", chain_id, owner, default={"success": True, "pools": []})

    def get_swap_quote(self, chain_id, from_token, to_token, amount):
        return self._answer(
            "get_swap_quote",
            chain_id,
            from_token,
            to_token,
            amount,
            default={"success": True, "expectedOutput": "4.9"},
        )

    def swap(self, chain_id, from_token, to_token, amount):
        return self._answer("swap", chain_id, from_token, to_token, amount)

    def held_tokens(self, chain_id, owner=None):
        self.calls.append(("held_tokens", (chain_id, owner)))
        return list(self.held)

    def called(self, name):
        return [args for call, args in self.calls if call == name]


class FakeWalletProvider:
    """EIP-1193 style double: balances in base units, scripted errors and receipts."""

    def __init__(
        self,
        *,
        account=USER,
        native_balance=10**19,
        token_balance=10**20,
        gas_price=10**9,
        send_errors=None,
        receipts=None,
        rpc_errors=None,
    ):
        self.account = account
        self.native_balance = native_balance
        self.token_balance = token_balance
        self.gas_price = gas_price
        self.send_errors = list(send_errors or [])
        self.receipts = list(receipts or [])
        self.rpc_errors = dict(rpc_errors or {})
        self.calls = []
        self.sent = []

    def request(self, method, params=None):
        self.calls.append((method, params))
        if method in self.rpc_errors:
            raise self.rpc_errors[method]
        if method == "eth_accounts":
            return [self.account]
        if method == "eth_getBalance":
            return hex(self.native_balance)
        if method == "eth_call":
            return "0x" + format(self.token_balance, "064x")
        if method == "eth_gasPrice":
            return hex(self.gas_price)
        if method == "eth_sendTransaction":
            self.sent.append(params[0])
            if self.send_errors:
                raise self.send_errors.pop(0)
            return TX_HASH
        if method == "eth_getTransactionReceipt":
            if self.receipts:
                receipt = self.receipts.pop(0)
                if isinstance(receipt, Exception):
                    raise receipt
                return receipt
            return {"status": "0x1", "transactionHash": params[0]}
        raise WalletRPCError(f"unsupported method {method}")

    def methods(self):
        return [method for method, _ in self.calls]


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create all tables before tests run, drop after all tests complete."""
    # Import models to ensure they are registered with Base
    from db.models import StoredIntent, VerifiedAddress  # noqa: F401

    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables():
    """Clean tables and in-memory stores between tests to ensure isolation."""
    yield
    from db.session import SessionLocal
    from db.models import StoredIntent, VerifiedAddress

    with SessionLocal() as db:
        db.query(StoredIntent).delete()
        db.query(VerifiedAddress).delete()
        db.commit()
    conversation._STORE.clear()
    verification.reset_fallback()


@pytest.fixture
def db_session():
    from db.session import SessionLocal

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def fake_integration():
    return FakeIntegration()


@pytest.fixture
def fake_wallet():
    return FakeWalletProvider()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def make_wallet():
    return FakeWalletProvider


@pytest.fixture
def client(fake_integration):
    app = create_app()
    app.dependency_overrides[get_integration] = lambda: fake_integration
    with TestClient(app) as client:
        yield client


@pytest.fixture
def wallet_client(fake_integration, fake_wallet, fake_clock):
    app = create_app()
    app.dependency_overrides[get_integration] = lambda: fake_integration
    app.dependency_overrides[get_transfer_executor_factory] = lambda: (
        lambda chain_id: TransferExecutor(fake_wallet, sleep=fake_clock.sleep, clock=fake_clock)
    )
    with TestClient(app) as client:
        yield client


@pytest.fixture(autouse=True)
def _configure_llm(monkeypatch, request):
    get_settings.cache_clear()
    if request.node.get_closest_marker("use_llm"):
        yield
        return
    monkeypatch.setenv("LLM_ENABLED", "false")
    get_settings.cache_clear()
    yield
