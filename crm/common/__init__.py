"""Common module — shared utilities for the agency CRM."""

from crm.common.constants import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    AlertType,
    ApprovalLevel,
    LeaveStatus,
    LeaveType,
    NotificationType,
    RealtimeEvent,
    UserRole,
)
from crm.common.exceptions import (
    AlreadyTerminalException,
    AppException,
    BadRequestException,
    ConflictError,
    DuplicateAccountException,
    ForbiddenException,
    InsufficientBalanceException,
    NotFoundException,
    UnauthorizedException,
    register_exception_handlers,
)
from crm.common.filters import apply_filters, apply_search, apply_sorting
from crm.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)

__all__ = [
    # Constants / Enums
    "AlertType",
    "ApprovalLevel",
    "LeaveStatus",
    "LeaveType",
    "NotificationType",
    "RealtimeEvent",
    "UserRole",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AlreadyTerminalException",
    "AppException",
    "BadRequestException",
    "ConflictError",
    "DuplicateAccountException",
    "ForbiddenException",
    "InsufficientBalanceException",
    "NotFoundException",
    "UnauthorizedException",
    "register_exception_handlers",
    # Filters
    "apply_filters",
    "apply_search",
    "apply_sorting",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
]
