# Model registry - importing this package registers every table on Base.metadata

from tradewiser.models.user import User
from tradewiser.models.warehouse import Warehouse
from tradewiser.models.commodity import Commodity
from tradewiser.models.warehouse_receipt import WarehouseReceipt, ReceiptTransfer
from tradewiser.models.loan import Loan, LoanRepayment
from tradewiser.models.process import Process
from tradewiser.models.commodity_sack import CommoditySack, SackMovement, SackQualityAssessment
from tradewiser.models.payment_record import PaymentRecord

__all__ = [
    "User",
    "Warehouse",
    "Commodity",
    "WarehouseReceipt",
    "ReceiptTransfer",
    "Loan",
    "LoanRepayment",
    "Process",
    "CommoditySack",
    "SackMovement",
    "SackQualityAssessment",
    "PaymentRecord",
]
