"""
匯率與 AI 分析服務層

兩者皆為一次性的外部請求：失敗時保留原值並回傳說明訊息，
回應抵達前若已有更新的請求（或手動設定匯率），舊回應直接丟棄。
"""

import logging
from decimal import Decimal

from wealthfolio.advisor.analyst import PortfolioAdvisor
from wealthfolio.engine.valuation import filter_visible
from wealthfolio.price.base import ProviderError
from wealthfolio.price.exchange import ExchangeRateProvider
from wealthfolio.schemas.market import AdvisorResponse, ExchangeRateResponse
from wealthfolio.services.sequencer import TOPIC_AI_ANALYSIS, TOPIC_EXCHANGE_RATE
from wealthfolio.services.workspace import Workspace, WorkspaceManager

logger = logging.getLogger(__name__)

RATE_FAILED_MESSAGE = "無法更新匯率。"
STALE_MESSAGE = "已有較新的請求，本次結果未套用。"
NO_ASSETS_MESSAGE = "目前沒有可分析的資產。"


class ExchangeRateService:

    def __init__(self, workspaces: WorkspaceManager, provider: ExchangeRateProvider):
        self.workspaces = workspaces
        self.provider = provider

    async def refresh(self, workspace: Workspace) -> ExchangeRateResponse:
        ticket = workspace.sequencer.issue(TOPIC_EXCHANGE_RATE)
        try:
            rate = await self.provider.get_usd_twd(force_refresh=True)
        except ProviderError as e:
            logger.warning("用戶 %s 匯率更新失敗: %s", workspace.user_id, e)
            return ExchangeRateResponse(
                rate=workspace.exchange_rate, updated=False, message=RATE_FAILED_MESSAGE,
            )

        if not workspace.sequencer.is_current(TOPIC_EXCHANGE_RATE, ticket):
            return ExchangeRateResponse(
                rate=workspace.exchange_rate, updated=False, message=STALE_MESSAGE,
            )

        self.workspaces.commit(
            workspace, workspace.document.model_copy(update={"exchange_rate": rate})
        )
        return ExchangeRateResponse(rate=rate, updated=True)

    def set_manual(self, workspace: Workspace, rate: Decimal) -> ExchangeRateResponse:
        """手動設定匯率；進行中的自動更新結果將不會覆蓋此值"""
        workspace.sequencer.issue(TOPIC_EXCHANGE_RATE)
        self.workspaces.commit(
            workspace, workspace.document.model_copy(update={"exchange_rate": rate})
        )
        logger.info("用戶 %s 手動設定匯率 %s", workspace.user_id, rate)
        return ExchangeRateResponse(rate=rate, updated=True)


class AdvisorService:

    def __init__(self, workspaces: WorkspaceManager, advisor: PortfolioAdvisor):
        self.workspaces = workspaces
        self.advisor = advisor

    async def analyze(
        self, workspace: Workspace, show_tw_stocks: bool = True, show_us_stocks: bool = True
    ) -> AdvisorResponse:
        """分析目前顯示中的資產，結果存入文件"""
        assets = filter_visible(workspace.assets, show_tw_stocks, show_us_stocks)
        if not assets:
            return AdvisorResponse(
                analysis=workspace.document.ai_analysis, updated=False, message=NO_ASSETS_MESSAGE,
            )

        ticket = workspace.sequencer.issue(TOPIC_AI_ANALYSIS)
        analysis = await self.advisor.analyze(assets, workspace.exchange_rate)

        if not workspace.sequencer.is_current(TOPIC_AI_ANALYSIS, ticket):
            return AdvisorResponse(
                analysis=workspace.document.ai_analysis, updated=False, message=STALE_MESSAGE,
            )

        self.workspaces.commit(
            workspace, workspace.document.model_copy(update={"ai_analysis": analysis})
        )
        return AdvisorResponse(analysis=analysis, updated=True)
