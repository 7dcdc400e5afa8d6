"""
測試共用設定

- 匯入 app 之前先以環境變數指定暫存 SQLite、測試環境與立即寫入
- 報價、匯率與 AI 以替身取代，不連外部網路
- 每個測試使用獨立的新用戶
"""

import os
import tempfile
import uuid
from decimal import Decimal
from types import SimpleNamespace

_TMP_DIR = tempfile.mkdtemp(prefix="wealthfolio-test-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR}/test.db"
os.environ["APP_ENV"] = "testing"
os.environ["DEBUG"] = "false"
os.environ["STORAGE_BACKEND"] = "database"
os.environ["PERSIST_DEBOUNCE_SECONDS"] = "0"
os.environ.pop("REDIS_URL", None)
os.environ.pop("OPENAI_API_KEY", None)

import httpx
import pytest
from fastapi.testclient import TestClient

from wealthfolio.advisor.analyst import PortfolioAdvisor
from wealthfolio.api.deps import get_advisor, get_price_manager, get_rate_provider
from wealthfolio.main import app
from wealthfolio.price.base import PriceData, PriceNotFoundError, PriceProvider
from wealthfolio.price.exchange import ExchangeRateProvider
from wealthfolio.price.manager import PriceManager
from wealthfolio.redis_client import clear_memory_cache
from wealthfolio.schemas.wealth import Asset, AssetType, WealthDocument
from wealthfolio.services.workspace import LoadPhase, Workspace, WorkspaceManager
from wealthfolio.storage.base import DocumentStore

RATE = Decimal("32.5")
RATE_URL = "https://rates.test/v4/latest/USD"

STUB_PRICES = {
    "2330": Decimal("1450"),
    "0050": Decimal("180"),
    "NVDA": Decimal("181.46"),
    "VOO": Decimal("520"),
}


# =============================================================================
# 替身
# =============================================================================


class StubProvider(PriceProvider):
    """依代碼回傳固定價格；未知代碼視為查無報價"""

    def __init__(self, prices: dict[str, Decimal], currency: str = "TWD", before_return=None):
        self.prices = prices
        self.currency = currency
        self.calls: list[str] = []
        self.before_return = before_return

    async def get_current_price(self, symbol: str) -> PriceData:
        self.calls.append(symbol)
        if self.before_return is not None:
            self.before_return(symbol)
        if symbol not in self.prices:
            raise PriceNotFoundError(f"找不到 {symbol} 的報價")
        return PriceData(symbol=symbol, price=self.prices[symbol], currency=self.currency, source="stub")


class MemoryStore(DocumentStore):
    """記憶體中的文件儲存"""

    def __init__(self, documents: dict[str, WealthDocument] | None = None):
        self.documents = dict(documents or {})
        self.loads = 0
        self.saves: list[tuple[str, WealthDocument]] = []

    async def load(self, user_id: str) -> WealthDocument | None:
        self.loads += 1
        return self.documents.get(user_id)

    async def save(self, user_id: str, document: WealthDocument) -> None:
        self.saves.append((user_id, document))
        self.documents[user_id] = document


class RecordingSaver:
    """只記錄排程，不實際寫入"""

    def __init__(self):
        self.scheduled: list[tuple[str, WealthDocument]] = []

    def schedule(self, user_id: str, document: WealthDocument) -> None:
        self.scheduled.append((user_id, document))

    def is_idle(self, user_id: str) -> bool:
        return True


class FakeCompletions:
    def __init__(self, content: str | None = "## 分析結果\n配置良好 👍", error: Exception | None = None):
        self.content = content
        self.error = error
        self.requests: list[dict] = []

    def create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_openai(content: str | None = "## 分析結果\n配置良好 👍", error: Exception | None = None):
    completions = FakeCompletions(content, error)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def rate_transport(rate=33.1, status_code: int = 200) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if status_code != 200:
            return httpx.Response(status_code)
        return httpx.Response(200, json={"base": "USD", "rates": {"TWD": rate, "USD": 1}})
    return httpx.MockTransport(handler)


def stub_price_manager() -> PriceManager:
    return PriceManager(providers={
        AssetType.TW_STOCK: StubProvider(STUB_PRICES),
        AssetType.US_STOCK: StubProvider(STUB_PRICES, currency="USD"),
    })


# =============================================================================
# 工廠函式
# =============================================================================


def make_asset(type: AssetType | str = AssetType.TW_STOCK, **fields) -> Asset:
    fields.setdefault("name", "資產")
    return Asset(type=AssetType(type), **fields)


def sample_assets() -> list[Asset]:
    """2330 台積電、NVDA、VOO、台幣活存、美金活存、信用貸款"""
    return [
        make_asset("TW_STOCK", id="tw", name="2330 台積電", shares=1000, cost_basis=600, current_price=1450),
        make_asset("US_STOCK", id="nvda", name="NVDA", shares=20, cost_basis=450, current_price=Decimal("181.46")),
        make_asset("US_STOCK", id="voo", name="VOO", shares=15, cost_basis=380, current_price=520),
        make_asset("CASH_TWD", id="twd", name="台幣活存", current_price=500000),
        make_asset("CASH_USD", id="usd", name="美金活存", current_price=3000),
        make_asset("LOAN_TWD", id="loan", name="信用貸款", cost_basis=Decimal("2.5"), current_price=800000),
    ]


def ready_workspace(assets: list[Asset] | None = None, **document_fields) -> tuple[Workspace, WorkspaceManager, RecordingSaver]:
    """已就緒的工作區（不經過載入流程）"""
    saver = RecordingSaver()
    manager = WorkspaceManager(MemoryStore(), saver, default_exchange_rate=RATE)
    document = WealthDocument(assets=assets or [], exchange_rate=RATE, **document_fields)
    workspace = Workspace(user_id="u1", document=document, phase=LoadPhase.READY)
    return workspace, manager, saver


def assert_decimal_equal(actual, expected, places: int = 2) -> None:
    quantum = Decimal(1).scaleb(-places)
    assert Decimal(str(actual)).quantize(quantum) == Decimal(str(expected)).quantize(quantum)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def _clear_cache():
    clear_memory_cache()
    yield
    clear_memory_cache()


@pytest.fixture
def advisor_client():
    return fake_openai()


@pytest.fixture
def client(advisor_client):
    app.dependency_overrides[get_price_manager] = stub_price_manager
    app.dependency_overrides[get_rate_provider] = lambda: ExchangeRateProvider(
        url=RATE_URL, transport=rate_transport()
    )
    app.dependency_overrides[get_advisor] = lambda: PortfolioAdvisor(client=advisor_client)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def register_and_login(client: TestClient, email: str | None = None, password: str = "secret123") -> dict:
    email = email or f"user-{uuid.uuid4().hex[:12]}@example.com"
    resp = client.post("/api/auth/register", json={
        "email": email, "username": "測試用戶", "password": password,
    })
    assert resp.status_code == 200, resp.text
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    token = resp.json()["data"]["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(client) -> dict:
    return register_and_login(client)
