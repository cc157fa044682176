"""Public interface for the ``budget_monitoring`` package.

Re-exports the import API and the public models as the stable import
surface. There is no runtime logic here, only symbol re-exports.
"""

from .api import (
    ImportFileError,
    ImportSession,
    classify_headers,
    detect_file,
    import_file,
    import_rows,
    map_row,
    parse_csv_line,
    submit_proposal,
)
from .models import (
    BudgetTransactionRecord,
    ClassificationResult,
    ImportOutcome,
    ImportState,
    RowError,
    StoredTransaction,
    TransactionStatus,
    WorkflowStage,
)

__all__ = [
    # API
    "classify_headers",
    "detect_file",
    "import_file",
    "import_rows",
    "map_row",
    "parse_csv_line",
    "submit_proposal",
    "ImportSession",
    "ImportFileError",
    # Models / types
    "BudgetTransactionRecord",
    "StoredTransaction",
    "ClassificationResult",
    "ImportOutcome",
    "ImportState",
    "RowError",
    "TransactionStatus",
    "WorkflowStage",
]
