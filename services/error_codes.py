"""
Standard error codes for service layer.

These error codes allow command handlers to programmatically handle
specific error conditions without parsing error message text.

Usage:
    from services.error_codes import ACCOUNT_NOT_LINKED, INSUFFICIENT_FUNDS
    from services.result import Result

    if account is None:
        return Result.fail("Account not linked", code=ACCOUNT_NOT_LINKED)

    if balance < amount:
        return Result.fail("Insufficient funds", code=INSUFFICIENT_FUNDS)
"""

# General errors
NOT_FOUND = "not_found"
VALIDATION_ERROR = "validation_error"
STATE_ERROR = "state_error"
RATE_LIMITED = "rate_limited"

# Account errors
ACCOUNT_NOT_LINKED = "account_not_linked"
ACCOUNT_ALREADY_LINKED = "account_already_linked"
RIOT_ACCOUNT_NOT_FOUND = "riot_account_not_found"
INVALID_RIOT_ID = "invalid_riot_id"

# Betting errors
INSUFFICIENT_FUNDS = "insufficient_funds"
BETTING_CLOSED = "betting_closed"
INVALID_BET_KIND = "invalid_bet_kind"
SELF_BET = "self_bet"
NO_OPEN_WINDOW = "no_open_window"
MULTIPLE_OPEN_WINDOWS = "multiple_open_windows"
WINDOW_ALREADY_ACTIVE = "window_already_active"

# External errors
EXTERNAL_SERVICE_ERROR = "external_service_error"

# Schedule errors
SCHEDULE_NOT_FOUND = "schedule_not_found"
SCHEDULE_CLOSED = "schedule_closed"
SCHEDULE_FULL = "schedule_full"
ALREADY_JOINED = "already_joined"
NOT_JOINED = "not_joined"
CREATOR_CANNOT_LEAVE = "creator_cannot_leave"
NOT_SCHEDULE_CREATOR = "not_schedule_creator"
ACTIVE_SCHEDULE_EXISTS = "active_schedule_exists"
INVALID_MODE = "invalid_mode"
