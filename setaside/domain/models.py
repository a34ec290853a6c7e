"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional, Tuple


class Frequency(str, Enum):
    """Recurrence cadence shared by obligations and income sources"""

    WEEKLY = "weekly"
    FORTNIGHTLY = "fortnightly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"
    CUSTOM = "custom"
    IRREGULAR = "irregular"


class ObligationKind(str, Enum):
    RECURRING = "recurring"
    ONE_OFF = "one_off"
    CUSTOM = "custom"


class ChangeType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class ContributionType(str, Enum):
    CONTRIBUTION = "contribution"
    MANUAL_ADJUSTMENT = "manual_adjustment"


class CycleType(str, Enum):
    """Contribution cycle patterns a user can be paid on"""

    WEEKLY = "weekly"
    FORTNIGHTLY = "fortnightly"
    TWICE_MONTHLY = "twice_monthly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class StaleReason(str, Enum):
    """Why an obligation has no resolvable next occurrence"""

    ONE_OFF_PAST_DUE = "one_off_past_due"
    SCHEDULE_EXHAUSTED = "schedule_exhausted"
    ENDED = "ended"
    NO_SCHEDULE = "no_schedule"


@dataclass(frozen=True)
class Obligation:
    """Tracked expense the user is saving toward"""

    id: str
    user_id: str
    name: str
    kind: ObligationKind
    amount_cents: int  # current base amount, escalations not yet folded in
    frequency: Optional[Frequency]  # None for one-off
    next_due_date: date
    start_date: Optional[date] = None
    frequency_days: Optional[int] = None  # required iff frequency == custom
    end_date: Optional[date] = None
    is_paused: bool = False
    is_active: bool = True
    fund_group_id: Optional[str] = None
    is_hypothetical: bool = False


@dataclass(frozen=True)
class EscalationRule:
    """Scheduled change to an obligation's amount"""

    id: str
    obligation_id: str
    change_type: ChangeType
    value: Decimal  # percent for percentage rules, cents for fixed rules
    effective_date: date
    interval_months: Optional[int] = None  # None = one-time
    is_applied: bool = False
    applied_at: Optional[datetime] = None


@dataclass(frozen=True)
class CustomScheduleEntry:
    """Literal (date, amount) occurrence replacing computed recurrence"""

    obligation_id: str
    due_date: date
    amount_cents: int
    is_paid: bool = False
    id: Optional[str] = None


@dataclass(frozen=True)
class ContributionRecord:
    """Append-only ledger line; positive = money set aside, negative = withdrawn"""

    obligation_id: str
    amount_cents: int
    date: date
    type: ContributionType = ContributionType.CONTRIBUTION
    note: Optional[str] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class IncomeSource:
    """Expected pay stream used to auto-detect the contribution cycle"""

    id: str
    user_id: str
    name: str
    expected_amount_cents: int
    frequency: Frequency
    frequency_days: Optional[int] = None
    is_irregular: bool = False
    minimum_expected_cents: Optional[int] = None
    next_expected_date: Optional[date] = None
    is_active: bool = True
    is_paused: bool = False


@dataclass(frozen=True)
class FundingSettings:
    """Per-user funding preferences"""

    current_fund_balance_cents: int = 0
    max_contribution_per_cycle_cents: Optional[int] = None  # None = unlimited
    contribution_cycle_days: Optional[int] = None
    contribution_cycle_type: Optional[CycleType] = None
    contribution_pay_days: Tuple[int, ...] = ()
    currency_symbol: str = "$"


@dataclass(frozen=True)
class CycleConfig:
    """Resolved contribution cycle; cycle_type None means undetermined"""

    cycle_type: Optional[CycleType]
    pay_days: Tuple[int, ...] = ()  # days of month for monthly / twice_monthly
    period_days: Optional[int] = None  # only for custom cycles
    source: str = "undetermined"  # explicit | detected | undetermined

    @property
    def is_determined(self) -> bool:
        return self.cycle_type is not None

    @classmethod
    def undetermined(cls) -> "CycleConfig":
        return cls(cycle_type=None)


@dataclass(frozen=True)
class ObligationForecast:
    """Allocator output for a single obligation"""

    obligation_id: str
    obligation_name: str
    next_due_date: date
    effective_amount_cents: int
    current_balance_cents: int
    amount_needed_cents: int
    cycles_remaining: int
    recommended_contribution_cents: int
    fund_group_id: Optional[str] = None
    is_hypothetical: bool = False

    @property
    def is_fully_funded(self) -> bool:
        return self.amount_needed_cents == 0


@dataclass(frozen=True)
class StaleObligation:
    """Obligation excluded from the forecast for caller attention"""

    obligation_id: str
    obligation_name: str
    reason: StaleReason
    last_due_date: Optional[date] = None


@dataclass(frozen=True)
class FundingForecast:
    """Output of one allocator run"""

    as_of: date
    cycle: CycleConfig
    obligations: Tuple[ObligationForecast, ...]
    stale: Tuple[StaleObligation, ...]
    total_recommended_cents: int
    total_required_cents: int
    total_funded_cents: int
    max_contribution_per_cycle_cents: Optional[int]
    over_cap: bool
    shortfall_cents: int

    @property
    def is_fully_funded(self) -> bool:
        return bool(self.obligations) and all(o.is_fully_funded for o in self.obligations)


@dataclass(frozen=True)
class CappedAllocation:
    """Share of the per-cycle cap given to one obligation"""

    obligation_id: str
    requested_cents: int
    allocated_cents: int


@dataclass(frozen=True)
class ShortfallWarning:
    obligation_id: str
    obligation_name: str
    amount_needed_cents: int
    amount_can_fund_cents: int
    shortfall_cents: int
    due_date: date
    message: str


@dataclass(frozen=True)
class RationedPlan:
    """Nearest-due-first split of a capped budget, computed on caller request"""

    allocations: Tuple[CappedAllocation, ...]
    warnings: Tuple[ShortfallWarning, ...]


@dataclass(frozen=True)
class WhatIfOverrides:
    """Immutable set of hypothetical changes applied before forecasting"""

    toggled_off_ids: FrozenSet[str] = frozenset()
    amount_overrides: Mapping[str, int] = field(default_factory=dict)
    hypotheticals: Tuple[Obligation, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "toggled_off_ids", frozenset(self.toggled_off_ids))
        object.__setattr__(self, "amount_overrides", MappingProxyType(dict(self.amount_overrides)))
        object.__setattr__(self, "hypotheticals", tuple(self.hypotheticals))

    @property
    def is_active(self) -> bool:
        return bool(self.toggled_off_ids or self.amount_overrides or self.hypotheticals)


@dataclass(frozen=True)
class OverlayResult:
    """Obligation list with overrides applied, ready for the allocator"""

    obligations: Tuple[Obligation, ...]
    amount_overrides: Mapping[str, int]
    change_summary: str


@dataclass(frozen=True)
class EscalationFold:
    """New base amount produced by folding due one-time escalations"""

    obligation_id: str
    new_amount_cents: int
    folded_rule_ids: Tuple[str, ...]


@dataclass(frozen=True)
class ProjectedAmount:
    date: date
    amount_cents: int


@dataclass(frozen=True)
class EngineSnapshot:
    """Persisted, immutable summary of one allocator run"""

    user_id: str
    calculated_at: datetime
    total_required_cents: int
    total_funded_cents: int
    total_recommended_cents: int
    over_cap: bool
    next_action_amount_cents: int
    next_action_date: date
    next_action_description: str
    next_action_obligation_id: Optional[str] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class TimelinePoint:
    date: date
    projected_balance_cents: int


@dataclass(frozen=True)
class ExpenseMarker:
    date: date
    obligation_id: str
    obligation_name: str
    amount_cents: int


@dataclass(frozen=True)
class ContributionMarker:
    date: date
    amount_cents: int


@dataclass(frozen=True)
class CrunchPoint:
    """Projected balance dropped to zero or below after an expense"""

    date: date
    projected_balance_cents: int
    trigger_obligation_id: str
    trigger_obligation_name: str


@dataclass(frozen=True)
class Timeline:
    start_date: date
    end_date: date
    points: Tuple[TimelinePoint, ...]
    expense_markers: Tuple[ExpenseMarker, ...]
    contribution_markers: Tuple[ContributionMarker, ...]
    crunch_points: Tuple[CrunchPoint, ...]
