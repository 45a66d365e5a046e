# Overview: Service-layer aggregate queries for the dashboard.

from __future__ import annotations

from collections import Counter
from datetime import date

from sqlalchemy import func
from sqlalchemy.orm import joinedload

from ..extensions import db
from ..models import Branch, Customer, CustomerStatus, Staff, User
from ..principal import Principal
from ..time_utils import utcnow
from .customer_service import effective_branch_scope


DEFAULT_RECENT_LIMIT = 10
MAX_RECENT_LIMIT = 50
TREND_MONTHS = 12


def _customer_counts(branch_scope: int | None) -> dict:
    query = db.session.query(Customer.status, func.count(Customer.id))
    if branch_scope is not None:
        query = query.filter(Customer.branch_id == branch_scope)
    by_status = dict(query.group_by(Customer.status).all())
    return {
        "total_customers": sum(by_status.values()),
        "active_customers": by_status.get(CustomerStatus.ACTIVE.value, 0),
        "inactive_customers": by_status.get(CustomerStatus.INACTIVE.value, 0),
    }


def get_stats(principal: Principal, branch_id: int | None = None) -> dict:
    """
    Headline counts. Staff always see their own branch; management see
    everything unless they narrow to a branch.
    """
    branch_scope = effective_branch_scope(principal, branch_id)
    stats = _customer_counts(branch_scope)

    staff_query = db.session.query(func.count(Staff.id))
    if branch_scope is not None:
        staff_query = staff_query.filter(Staff.branch_id == branch_scope)
    stats["total_staff"] = staff_query.scalar() or 0

    if principal.is_management:
        if branch_scope is None:
            stats["total_branches"] = db.session.query(func.count(Branch.id)).scalar() or 0
        else:
            stats["total_branches"] = 1 if db.session.get(Branch, branch_scope) else 0
        stats["total_admins"] = db.session.query(func.count(User.id)).scalar() or 0

    stats["branch_id"] = branch_scope
    return stats


def get_branch_stats() -> list[dict]:
    """Per-branch customer and staff counts, busiest branches first."""
    customer_rows = (
        db.session.query(Customer.branch_id, Customer.status, func.count(Customer.id))
        .group_by(Customer.branch_id, Customer.status)
        .all()
    )
    staff_rows = dict(
        db.session.query(Staff.branch_id, func.count(Staff.id)).group_by(Staff.branch_id).all()
    )

    per_branch: dict[int, Counter] = {}
    for branch_id, status, count in customer_rows:
        per_branch.setdefault(branch_id, Counter())[status] += count

    results = []
    for branch in db.session.query(Branch).all():
        counts = per_branch.get(branch.id, Counter())
        results.append({
            "branch_id": branch.id,
            "branch_name": branch.name,
            "address": branch.address,
            "manager_name": branch.manager_name,
            "total_customers": sum(counts.values()),
            "active_customers": counts.get(CustomerStatus.ACTIVE.value, 0),
            "inactive_customers": counts.get(CustomerStatus.INACTIVE.value, 0),
            "total_staff": staff_rows.get(branch.id, 0),
        })

    results.sort(key=lambda row: (-row["total_customers"], row["branch_id"]))
    return results


def clamp_recent_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_RECENT_LIMIT
    return min(MAX_RECENT_LIMIT, max(1, limit))


def get_recent_customers(principal: Principal, limit: int | None = None, branch_id: int | None = None) -> list[dict]:
    branch_scope = effective_branch_scope(principal, branch_id)
    query = db.session.query(Customer).options(joinedload(Customer.branch))
    if branch_scope is not None:
        query = query.filter(Customer.branch_id == branch_scope)
    rows = query.order_by(Customer.id.desc()).limit(clamp_recent_limit(limit)).all()
    return [customer.to_dict() for customer in rows]


def _months_back(today: date, months: int) -> date:
    """First day of the month `months` months before today's month."""
    index = today.year * 12 + (today.month - 1) - months
    return date(index // 12, index % 12 + 1, 1)


def get_customer_trends(branch_id: int | None = None, *, today: date | None = None) -> list[dict]:
    """
    Registrations per month (YYYY-MM) over the last TREND_MONTHS months,
    newest month first. Months without registrations are omitted.
    """
    today = today or utcnow().date()
    cutoff = _months_back(today, TREND_MONTHS - 1)

    query = db.session.query(Customer.registration_date).filter(
        Customer.registration_date >= cutoff,
        Customer.registration_date <= today,
    )
    if branch_id is not None:
        query = query.filter(Customer.branch_id == branch_id)

    counts = Counter(row[0].strftime("%Y-%m") for row in query.all())
    return [
        {"month": month, "count": counts[month]}
        for month in sorted(counts, reverse=True)
    ]
