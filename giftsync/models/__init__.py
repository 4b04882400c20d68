from giftsync.models.organization import OrganizationModel
from giftsync.models.donor import DonorModel
from giftsync.models.transaction import TransactionModel, TransactionItemModel
from giftsync.models.receipt import ReceiptModel
from giftsync.models.option import OptionModel

__all__ = [
    "OrganizationModel",
    "DonorModel",
    "TransactionModel",
    "TransactionItemModel",
    "ReceiptModel",
    "OptionModel",
]
