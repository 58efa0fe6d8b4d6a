"""Enums and constants for the agency CRM — one canonical casing per enum."""

from __future__ import annotations

import enum


# ── Users / Roles ───────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    superadmin = "Superadmin"
    admin = "Admin"
    team_leader = "Team Leader"
    employee = "Employee"
    client = "Client"


class UserStatus(str, enum.Enum):
    active = "Active"
    inactive = "Inactive"


class Presence(str, enum.Enum):
    online = "online"
    offline = "offline"
    busy = "busy"
    away = "away"
    in_meeting = "in_meeting"


# ── Leave ───────────────────────────────────────────────────────────

class LeaveType(str, enum.Enum):
    sick = "Sick"
    casual = "Casual"
    paid = "Paid"
    unpaid = "Unpaid"
    medical = "Medical"


class LeaveStatus(str, enum.Enum):
    pending = "Pending"
    approved = "Approved"
    rejected = "Rejected"


class ApprovalLevel(str, enum.Enum):
    team_leader = "Team Leader"
    admin = "Admin"
    superadmin = "Superadmin"
    completed = "Completed"


# Fixed approval chain; each rung hands over to the next.
APPROVAL_CHAIN: tuple[ApprovalLevel, ...] = (
    ApprovalLevel.team_leader,
    ApprovalLevel.admin,
    ApprovalLevel.superadmin,
)

# Yearly allowance per leave type; None = unbounded.
DEFAULT_LEAVE_ALLOWANCE: dict[LeaveType, int | None] = {
    LeaveType.sick: 8,
    LeaveType.casual: 12,
    LeaveType.medical: 5,
    LeaveType.paid: None,
    LeaveType.unpaid: None,
}


# ── Accounts / Catalog / Billing ────────────────────────────────────

class AccountStatus(str, enum.Enum):
    active = "Active"
    pipeline = "Pipeline"
    quotations = "Quotations"
    customer = "Customer"
    closed = "Closed"
    target_leads = "TargetLeads"


class LeadType(str, enum.Enum):
    fixed_client = "Fixed client"
    revenue_based = "Revenue based client"
    vrism_product = "Vrism Product"
    others = "others"


class FollowUpStatus(str, enum.Enum):
    pending = "pending"
    completed = "completed"


class BillingCycle(str, enum.Enum):
    monthly = "Monthly"
    yearly = "Yearly"
    one_time = "One Time"


class SubscriptionStatus(str, enum.Enum):
    active = "active"
    expired = "expired"
    cancelled = "cancelled"
    pending = "pending"


# ── Projects / Tasks ────────────────────────────────────────────────

class ProjectStatus(str, enum.Enum):
    planned = "Planned"
    in_progress = "In Progress"
    completed = "Completed"
    on_hold = "On Hold"
    cancelled = "Cancelled"


class StepStatus(str, enum.Enum):
    pending = "Pending"
    in_progress = "In Progress"
    review = "Review"
    completed = "Completed"
    on_hold = "On Hold"


class TaskStatus(str, enum.Enum):
    to_do = "To Do"
    in_progress = "In Progress"
    review = "Review"
    completed = "Completed"
    overdue = "Overdue"


# ── Alerts / Notifications ──────────────────────────────────────────

class AlertType(str, enum.Enum):
    work = "Work"
    task = "Task"
    project = "Project"
    leave = "Leave"
    general = "General"
    event = "Event"
    subscription = "Subscription"


class NotificationType(str, enum.Enum):
    info = "info"
    error = "error"
    stop_work_warning = "STOP_WORK_WARNING"


class RealtimeEvent(str, enum.Enum):
    alert_received = "alert_received"
    new_notification = "new_notification"
    presence_updated = "presence_updated"
    leave_request_received = "leave_request_received"
    leave_status_update = "leave_status_update"
    new_message = "new_message"
    typing = "typing"


# ── Misc constants ──────────────────────────────────────────────────

DISPLAY_DATE_FORMAT = "%d %b %Y"      # 19 Feb 2026
HISTORY_DATE_FORMAT = "%d-%m-%Y"      # 19-02-2026
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10
