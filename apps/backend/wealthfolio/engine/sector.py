"""
產業自動判斷

依資產名稱（代碼或中文名）以關鍵字規則表判斷產業，
規則依序比對，先符合者為準；都不符合時歸為 OTHER。
"""

import re

from wealthfolio.schemas.wealth import Sector

# 台股 ETF 代碼：00 開頭的 4~6 碼（如 0050、00878、00631L）
_TW_ETF_CODE = re.compile(r"\b00\d{2,4}[A-Z]?\b")

SECTOR_RULES: list[tuple[Sector, tuple[str, ...]]] = [
    (Sector.ETF, (
        "ETF", "VOO", "VTI", "QQQ", "SPY", "IVV", "VT", "VXUS", "BND",
        "TLT", "SCHD", "SOXX", "SMH", "國泰永續", "富邦台50", "高股息",
    )),
    (Sector.CRYPTO, (
        "COIN", "MSTR", "MARA", "RIOT", "IBIT", "BITO", "比特幣", "加密",
        "BTC", "ETH",
    )),
    (Sector.SEMICONDUCTOR, (
        "2330", "2303", "2454", "3711", "2379", "3034", "6415", "3443", "5347",
        "台積電", "聯電", "聯發科", "日月光", "瑞昱", "聯詠", "世芯", "創意",
        "半導體", "NVDA", "AMD", "TSM", "INTC", "AVGO", "QCOM", "MU", "ASML",
        "ARM", "TXN",
    )),
    (Sector.TECH, (
        "2317", "2382", "2308", "3231", "2357", "2353", "2324", "2345",
        "鴻海", "廣達", "台達電", "緯創", "華碩", "宏碁", "仁寶", "智邦",
        "AAPL", "MSFT", "GOOG", "GOOGL", "AMZN", "META", "TSLA", "NFLX",
        "CRM", "ORCL", "ADBE", "PLTR", "科技", "電子",
    )),
    (Sector.FINANCE, (
        "2881", "2882", "2884", "2885", "2886", "2891", "2892", "5880",
        "富邦金", "國泰金", "玉山金", "元大金", "兆豐金", "中信金", "第一金",
        "合庫金", "金控", "銀行", "保險", "JPM", "BAC", "WFC", "GS", "MS",
        "V", "MA", "BRK.B", "BRK-B",
    )),
    (Sector.TRADITIONAL, (
        "1301", "1303", "1326", "2002", "1216", "2603", "2609", "2615",
        "2912", "1101", "台塑", "南亞", "台化", "中鋼", "統一", "長榮",
        "陽明", "萬海", "統一超", "台泥", "航運", "鋼鐵", "水泥", "塑膠",
        "KO", "PEP", "PG", "WMT", "MCD", "XOM", "CVX",
    )),
]


def _tokens(name: str) -> set[str]:
    return set(re.split(r"[\s,/()（）]+", name.upper())) - {""}


def detect_sector(name: str) -> Sector:
    """
    依名稱判斷產業

    英文代碼需整個詞相符（避免 "MA" 命中 "AMAZON"），
    中文關鍵字與數字代碼則採子字串比對。
    """
    if not name:
        return Sector.OTHER

    upper = name.upper()
    tokens = _tokens(name)

    if _TW_ETF_CODE.search(upper):
        return Sector.ETF

    for sector, keywords in SECTOR_RULES:
        for keyword in keywords:
            if keyword.isascii() and not keyword.isdigit():
                if keyword in tokens:
                    return sector
            elif keyword in upper:
                return sector

    return Sector.OTHER
