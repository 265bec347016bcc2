"""
Access Evaluator
Pure allow/deny decisions over a single access record

Nothing here touches storage and nothing here raises for a denial:
every check returns a boolean (or an outcome tuple with a reason).
"""

import ipaddress
from datetime import datetime, time
from typing import NamedTuple, Optional

from gad_procurement.core.clock import as_utc, utcnow
from gad_procurement.core.logging import get_logger
from gad_procurement.services.permissions.models import (
    AccessContext,
    AccessRecord,
    AccessStatus,
    ContractRef,
    PermissionCategory,
    Weekday,
)

logger = get_logger(__name__)

_WEEKDAYS = list(Weekday)


class RestrictionOutcome(NamedTuple):
    allowed: bool
    reason: str = ""


def is_expired(record: AccessRecord, now: Optional[datetime] = None) -> bool:
    """True when the validity window has an end date in the past"""
    end_date = as_utc(record.validity.end_date)
    if end_date is None:
        return False
    return (as_utc(now) or utcnow()) > end_date


def is_usable(record: AccessRecord, now: Optional[datetime] = None) -> bool:
    """Base gate: active flag set, ACTIVE status and not expired"""
    return (
        record.is_active
        and record.status == AccessStatus.ACTIVE
        and not is_expired(record, now)
    )


def has_permission(
    record: AccessRecord,
    category: str,
    flag: str,
    now: Optional[datetime] = None,
) -> bool:
    """
    Check one permission flag on a record

    Fails closed for inactive, non-ACTIVE or expired records and for
    unknown category/flag names.
    """
    if not is_usable(record, now):
        logger.debug(f"Access {record.id} not usable for {category}.{flag}")
        return False
    return record.permissions.flag(category, flag)


def can_access_contract(
    record: AccessRecord,
    contract: ContractRef,
    now: Optional[datetime] = None,
) -> bool:
    """
    Decide whether a record reaches a contract

    Order: base gate, own department, global repository access,
    explicit cross-department grant.
    """
    if not is_usable(record, now):
        return False

    contracts = PermissionCategory.CONTRACTS.value

    if contract.requesting_department_id == record.department_id:
        return has_permission(record, contracts, "can_view_department", now)

    if record.cross_department_access.has_global_access and has_permission(
        record, contracts, "can_view_all", now
    ):
        return True

    if record.cross_department_access.grants_department(contract.requesting_department_id):
        return True

    logger.debug(
        f"Access {record.id} has no route to contract {contract.id} "
        f"in department {contract.requesting_department_id}"
    )
    return False


def _parse_time(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def _in_window(moment: time, start: Optional[str], end: Optional[str]) -> bool:
    if start is None and end is None:
        return True
    start_t = _parse_time(start) if start else time.min
    end_t = _parse_time(end) if end else time.max
    if start_t <= end_t:
        return start_t <= moment <= end_t
    # Overnight window, e.g. 22:00-06:00
    return moment >= start_t or moment <= end_t


def _ip_matches(ip: str, entries) -> bool:
    address = ipaddress.ip_address(ip)
    for entry in entries:
        if address in ipaddress.ip_network(entry, strict=False):
            return True
    return False


def evaluate_restrictions(
    record: AccessRecord,
    context: AccessContext,
    contract: Optional[ContractRef] = None,
) -> RestrictionOutcome:
    """
    Check the record's restrictions against request circumstances

    Day and time windows are compared against ``context.at`` as given, so
    callers pass the moment in the department's local clock.
    """
    restrictions = record.restrictions
    moment = context.at or utcnow()

    window = restrictions.time_restrictions
    if window.allowed_days and _WEEKDAYS[moment.weekday()] not in window.allowed_days:
        return RestrictionOutcome(False, "Access not allowed on this day")
    if not _in_window(moment.time(), window.start_time, window.end_time):
        return RestrictionOutcome(False, "Access not allowed at this time")

    if restrictions.ip_deny_list or restrictions.ip_allow_list:
        if context.ip_address is None:
            if restrictions.ip_allow_list:
                return RestrictionOutcome(False, "Client address required")
        else:
            try:
                if _ip_matches(context.ip_address, restrictions.ip_deny_list):
                    return RestrictionOutcome(False, "Client address denied")
                if restrictions.ip_allow_list and not _ip_matches(
                    context.ip_address, restrictions.ip_allow_list
                ):
                    return RestrictionOutcome(False, "Client address not allowed")
            except ValueError:
                return RestrictionOutcome(False, "Invalid client address")

    if contract is not None:
        if (
            restrictions.allowed_contract_types
            and contract.contract_type_id not in restrictions.allowed_contract_types
        ):
            return RestrictionOutcome(False, "Contract type not allowed")
        if restrictions.allowed_phases and contract.phase_id not in restrictions.allowed_phases:
            return RestrictionOutcome(False, "Contract phase not allowed")
        if (
            restrictions.max_amount is not None
            and contract.amount is not None
            and contract.amount > restrictions.max_amount
        ):
            return RestrictionOutcome(False, "Contract amount exceeds limit")

    return RestrictionOutcome(True)
