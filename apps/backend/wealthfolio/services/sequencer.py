"""
非同步請求序號

同一主題（匯率、股價、AI 分析）可能同時有多個請求在進行，
只有最新發出的請求結果可以寫回狀態，較舊的回應一律丟棄。
"""

TOPIC_EXCHANGE_RATE = "exchange_rate"
TOPIC_PRICES = "prices"
TOPIC_AI_ANALYSIS = "ai_analysis"


class RequestSequencer:
    """依主題發放遞增序號"""

    def __init__(self):
        self._latest: dict[str, int] = {}

    def issue(self, topic: str) -> int:
        """發出新序號；之前發出的序號隨即失效"""
        ticket = self._latest.get(topic, 0) + 1
        self._latest[topic] = ticket
        return ticket

    def is_current(self, topic: str, ticket: int) -> bool:
        return self._latest.get(topic, 0) == ticket
