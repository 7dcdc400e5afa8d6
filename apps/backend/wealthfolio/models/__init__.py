"""WealthFolio ORM Models 套件"""

from wealthfolio.models.user import User
from wealthfolio.models.wealth_document import WealthDocumentRow

__all__ = [
    "User",
    "WealthDocumentRow",
]
