"""optibook - Optimistic mutation engine for a facility-booking provider console."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("optibook")
except PackageNotFoundError:
    __version__ = "0+local"
from optibook._transport import DataApi, HttpDataApi
from optibook.adapters import (
    OptimisticAuth,
    OptimisticBookings,
    OptimisticDashboard,
    OptimisticFacilities,
)
from optibook.config import ApiConfig, MutationOptions
from optibook.engine import OptimisticMutations
from optibook.exceptions import (
    OptibookApiError,
    OptibookAuthenticationError,
    OptibookConfigError,
    OptibookError,
    OptibookLoopError,
    OptibookTransportError,
    OptibookValidationError,
)
from optibook.forms import FormOptions, OptimisticForm
from optibook.mutations import (
    BatchCoordinator,
    BatchPatch,
    FeedbackMessage,
    MutationCoordinator,
    RetryManager,
)
from optibook.state import OptimisticRecord, RecordStatus, RecordStore, RollbackTimers

__all__ = [
    "__version__",
    "ApiConfig",
    "BatchCoordinator",
    "BatchPatch",
    "DataApi",
    "FeedbackMessage",
    "FormOptions",
    "HttpDataApi",
    "MutationCoordinator",
    "MutationOptions",
    "OptibookApiError",
    "OptibookAuthenticationError",
    "OptibookConfigError",
    "OptibookError",
    "OptibookLoopError",
    "OptibookTransportError",
    "OptibookValidationError",
    "OptimisticAuth",
    "OptimisticBookings",
    "OptimisticDashboard",
    "OptimisticFacilities",
    "OptimisticForm",
    "OptimisticMutations",
    "OptimisticRecord",
    "RecordStatus",
    "RecordStore",
    "RetryManager",
    "RollbackTimers",
]
