"""
資產文件模型

每位用戶一筆，完整保存資產、歷史快照、投入紀錄、匯率與 AI 分析。
三個清單以 JSON 欄位儲存，欄位內容即為前端使用的 camelCase 結構。
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, Text, DateTime, Numeric, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wealthfolio.database import Base


class WealthDocumentRow(Base):
    __tablename__ = "wealth_documents"

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    assets: Mapped[list] = mapped_column(
        JSON, default=list,
        comment="資產清單",
    )
    history: Mapped[list] = mapped_column(
        JSON, default=list,
        comment="每月淨值快照",
    )
    investments: Mapped[list] = mapped_column(
        JSON, default=list,
        comment="資金投入紀錄",
    )
    exchange_rate: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=12, scale=6), nullable=True,
        comment="USD/TWD 匯率",
    )
    ai_analysis: Mapped[str] = mapped_column(
        Text, default="",
        comment="最近一次 AI 分析結果 (Markdown)",
    )
    last_updated: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    # 關聯
    user = relationship("User", back_populates="document")

    def __repr__(self) -> str:
        return f"<WealthDocument user={self.user_id} assets={len(self.assets or [])}>"
