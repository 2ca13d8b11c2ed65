"""
Document path layout.

Everything a user owns lives under users/{user_id}/:

    paymentSources/bankAccounts/{id}
    paymentSources/creditCards/{id}
    paymentSources/cash
    expenses/{id}
    obligations/advances/{id}
    obligations/refunds/{id}
"""

from src.models.wallet import PaymentSourceType, SourceRef


class UserPaths:
    """Builds document paths for one user."""

    def __init__(self, user_id: str):
        if not user_id or "/" in user_id:
            raise ValueError(f"Invalid user id: {user_id!r}")
        self.user_id = user_id
        self._root = f"users/{user_id}"

    @property
    def bank_accounts(self) -> str:
        return f"{self._root}/paymentSources/bankAccounts"

    def bank_account(self, account_id: str) -> str:
        return f"{self.bank_accounts}/{account_id}"

    @property
    def credit_cards(self) -> str:
        return f"{self._root}/paymentSources/creditCards"

    def credit_card(self, card_id: str) -> str:
        return f"{self.credit_cards}/{card_id}"

    @property
    def cash(self) -> str:
        return f"{self._root}/paymentSources/cash"

    def source(self, ref: SourceRef) -> str:
        if ref.type is PaymentSourceType.BANK:
            return self.bank_account(ref.id)
        if ref.type is PaymentSourceType.CREDIT_CARD:
            return self.credit_card(ref.id)
        return self.cash

    @property
    def expenses(self) -> str:
        return f"{self._root}/expenses"

    def expense(self, expense_id: str) -> str:
        return f"{self.expenses}/{expense_id}"

    @property
    def advances(self) -> str:
        return f"{self._root}/obligations/advances"

    def advance(self, advance_id: str) -> str:
        return f"{self.advances}/{advance_id}"

    @property
    def refunds(self) -> str:
        return f"{self._root}/obligations/refunds"

    def refund(self, refund_id: str) -> str:
        return f"{self.refunds}/{refund_id}"
