"""Read-side helpers for the library catalogue.

Plans and fees are scoped either to a single branch or to the whole
library (``branch`` is NULL). Every lookup here is the explicit two-tier
merge: branch-specific rows first, then library-global rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from django.db.models import Q  # type: ignore

from .models import AdditionalFee, Branch, Locker, Plan


@dataclass
class BranchCatalog:
    branch: Branch
    plans: list[Plan] = field(default_factory=list)
    fees: list[AdditionalFee] = field(default_factory=list)


def _branch_scope(branch: Branch) -> Q:
    return Q(library_id=branch.library_id) & (Q(branch_id=branch.id) | Q(branch__isnull=True))


def _merge_tiers(rows: Iterable, branch: Branch) -> list:
    rows = list(rows)
    branch_rows = [row for row in rows if row.branch_id == branch.id]
    global_rows = [row for row in rows if row.branch_id is None]
    return branch_rows + global_rows


def plans_for_branch(branch: Branch) -> list[Plan]:
    qs = Plan.objects.filter(_branch_scope(branch), is_active=True).order_by("price", "name")
    return _merge_tiers(qs, branch)


def fees_for_branch(branch: Branch, fee_ids: Iterable | None = None) -> list[AdditionalFee]:
    qs = AdditionalFee.objects.filter(_branch_scope(branch), is_active=True).order_by("name")
    if fee_ids is not None:
        qs = qs.filter(id__in=list(fee_ids))
    return _merge_tiers(qs, branch)


def branch_catalog(branch: Branch) -> BranchCatalog:
    return BranchCatalog(branch=branch, plans=plans_for_branch(branch), fees=fees_for_branch(branch))


def plan_is_offered_at(plan: Plan, branch: Branch) -> bool:
    """Whether ``plan`` can be booked at ``branch``."""
    if plan.library_id != branch.library_id:
        return False
    return plan.branch_id is None or plan.branch_id == branch.id


def locker_for_seat_number(branch: Branch, seat_number: str) -> Locker | None:
    """Locker paired with a seat when a branch does not sell lockers separately."""
    return Locker.objects.filter(branch=branch, number=seat_number, is_active=True).first()
