"""
資產服務層

資產新增、修改、刪除，以及批次更新股價與單一標的報價查詢。
"""

import logging

from pydantic import ValidationError

from wealthfolio.engine.sector import detect_sector
from wealthfolio.price.base import PriceData
from wealthfolio.price.manager import PriceManager, parse_ticker
from wealthfolio.schemas.portfolio import PriceRefreshItem, PriceRefreshResult, QuoteResponse
from wealthfolio.schemas.wealth import Asset, AssetCreate, AssetType, AssetUpdate
from wealthfolio.services.sequencer import TOPIC_PRICES
from wealthfolio.services.workspace import Workspace, WorkspaceManager

logger = logging.getLogger(__name__)


class AssetNotFoundError(LookupError):
    """找不到指定的資產"""
    pass


class InvalidAssetError(ValueError):
    """合併後的資產欄位不合法"""
    pass


def _with_sector(asset: Asset) -> Asset:
    """股票未指定產業時，依名稱自動判斷"""
    if asset.type.is_stock and asset.sector is None:
        return asset.model_copy(update={"sector": detect_sector(asset.name)})
    return asset


class AssetService:
    """資產業務邏輯"""

    def __init__(self, workspaces: WorkspaceManager, price_manager: PriceManager):
        self.workspaces = workspaces
        self.price_manager = price_manager

    @staticmethod
    def find(workspace: Workspace, asset_id: str) -> Asset:
        asset = next((a for a in workspace.assets if a.id == asset_id), None)
        if asset is None:
            raise AssetNotFoundError(f"資產 {asset_id} 不存在")
        return asset

    def create(self, workspace: Workspace, data: AssetCreate) -> Asset:
        asset = _with_sector(Asset(**data.model_dump()).normalized())
        document = workspace.document
        self.workspaces.commit(
            workspace, document.model_copy(update={"assets": [*document.assets, asset]})
        )
        logger.info("新增資產 %s (%s)", asset.name, asset.type.value)
        return asset

    def update(self, workspace: Workspace, asset_id: str, changes: AssetUpdate) -> Asset:
        """只更新有傳入的欄位；id 不變"""
        current = self.find(workspace, asset_id)
        update = changes.model_dump(exclude_unset=True)
        # 必填欄位傳入 null 時視為未修改
        for required in ("type", "name", "shares", "cost_basis", "current_price"):
            if required in update and update[required] is None:
                del update[required]

        try:
            merged = Asset.model_validate({**current.model_dump(), **update, "id": current.id})
        except ValidationError as e:
            raise InvalidAssetError(str(e)) from e

        if "name" in update and "sector" not in update:
            merged = merged.model_copy(update={"sector": None})
        asset = _with_sector(merged.normalized())

        document = workspace.document
        assets = [asset if a.id == asset_id else a for a in document.assets]
        self.workspaces.commit(workspace, document.model_copy(update={"assets": assets}))
        return asset

    def delete(self, workspace: Workspace, asset_id: str) -> None:
        self.find(workspace, asset_id)
        document = workspace.document
        assets = [a for a in document.assets if a.id != asset_id]
        self.workspaces.commit(workspace, document.model_copy(update={"assets": assets}))
        logger.info("刪除資產 %s", asset_id)

    async def refresh_prices(self, workspace: Workspace) -> PriceRefreshResult:
        """
        批次更新所有股票的市價

        每檔股票各自查詢、同時進行，失敗的資產保留原價。
        回應抵達時：
        - 已有更新的批次請求：整批結果丟棄
        - 資產已被刪除，或期間價格被手動修改：該筆不覆寫
        """
        sequencer = workspace.sequencer
        ticket = sequencer.issue(TOPIC_PRICES)
        stocks = [a for a in workspace.assets if a.type.is_stock]
        requested = {a.id: a.current_price for a in stocks}

        results = await self.price_manager.fetch_many(stocks)

        if not sequencer.is_current(TOPIC_PRICES, ticket):
            logger.info("用戶 %s 的股價更新已被較新的請求取代", workspace.user_id)
            items = [
                PriceRefreshItem(asset_id=a.id, name=a.name, updated=False, message="已有較新的更新請求")
                for a in stocks
            ]
            return PriceRefreshResult(updated=0, failed=len(items), items=items)

        names = {a.id: a.name for a in stocks}
        latest = {a.id: a for a in workspace.assets}
        new_prices: dict[str, PriceData] = {}
        items: list[PriceRefreshItem] = []

        for asset_id, result in results.items():
            name = names[asset_id]
            if isinstance(result, BaseException):
                logger.warning("更新 %s 股價失敗: %s", name, result)
                items.append(PriceRefreshItem(
                    asset_id=asset_id, name=name, updated=False, message=str(result) or "無法取得報價",
                ))
                continue

            current = latest.get(asset_id)
            if current is None:
                items.append(PriceRefreshItem(
                    asset_id=asset_id, name=name, updated=False, message="資產已刪除",
                ))
            elif current.current_price != requested[asset_id]:
                items.append(PriceRefreshItem(
                    asset_id=asset_id, name=name, updated=False, message="價格已於更新期間修改",
                ))
            else:
                new_prices[asset_id] = result
                items.append(PriceRefreshItem(
                    asset_id=asset_id, name=name, updated=True, price=result.price,
                ))

        if new_prices:
            document = workspace.document
            assets = [
                a.model_copy(update={"current_price": new_prices[a.id].price}) if a.id in new_prices else a
                for a in document.assets
            ]
            self.workspaces.commit(workspace, document.model_copy(update={"assets": assets}))

        updated = len(new_prices)
        logger.info("用戶 %s 股價更新完成: 成功 %d 筆，失敗 %d 筆",
                    workspace.user_id, updated, len(items) - updated)
        return PriceRefreshResult(updated=updated, failed=len(items) - updated, items=items)

    async def quote(self, name: str, asset_type: AssetType) -> QuoteResponse | None:
        """新增資產時帶入目前市價；無法取得時回傳 None"""
        if not asset_type.is_stock:
            return None
        price = await self.price_manager.get_quote(name, asset_type)
        if price is None:
            return None
        return QuoteResponse(
            name=name,
            symbol=parse_ticker(name, asset_type),
            type=asset_type,
            price=price.price,
            source=price.source,
        )
