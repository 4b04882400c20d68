from giftsync.accounting.base import AccountingService  # noqa: F401
from giftsync.accounting.quickbooks import QuickBooksClient  # noqa: F401
