"""Screen state controllers."""

from pocketledger.controllers.transaction_form import TransactionFormController
from pocketledger.controllers.transaction_list import TransactionListController

__all__ = ["TransactionFormController", "TransactionListController"]
