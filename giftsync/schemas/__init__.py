from giftsync.schemas.records import (  # noqa: F401
    CompanyDetail,
    CounterpartyRef,
    CustomerDetail,
    ExternalLineItem,
    ExternalRecord,
    SalesReceiptDetail,
)
from giftsync.schemas.report import ReportParams, ReportRow  # noqa: F401
from giftsync.schemas.results import (  # noqa: F401
    BatchResult,
    DonorSyncResult,
    GenerateAllResult,
    ItemImportResult,
    ItemMutation,
    ItemView,
    LinkResult,
    MultiItemImportResult,
    OrganizationSyncResult,
    RecordError,
)
from giftsync.schemas.receipt import (  # noqa: F401
    AttestationBlock,
    DonationSummary,
    DonorBlock,
    ReceiptContent,
    ReceiptHeader,
    SignatureBlock,
)
