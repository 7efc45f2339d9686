"""Domain models - pure Python dataclasses representing lifecycle entities"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class Category(str, Enum):
    INACTIVE = "inactive"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED_BUT_ENABLED = "expired_but_enabled"
    PROTECTED = "protected"
    COMPLIANT = "compliant"  # Evaluated, nothing to do


class Action(str, Enum):
    NONE = "none"
    NOTIFY = "notify"
    DEACTIVATE = "deactivate"
    NOTIFY_AND_DEACTIVATE = "notify_and_deactivate"
    FLAG = "flag"

    @property
    def notifies(self) -> bool:
        return self in (Action.NOTIFY, Action.NOTIFY_AND_DEACTIVATE)

    @property
    def deactivates(self) -> bool:
        return self in (Action.DEACTIVATE, Action.NOTIFY_AND_DEACTIVATE)


class OutcomeStatus(str, Enum):
    NO_ACTION = "no_action"
    FLAGGED = "flagged"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass(frozen=True)
class Account:
    """Directory account record as read at the start of a run"""

    account_id: str
    display_name: Optional[str] = None
    email_address: Optional[str] = None
    last_activity_at: Optional[datetime] = None  # None = never authenticated
    expires_at: Optional[datetime] = None  # None = never expires
    description: str = ""
    enabled: bool = True

    @property
    def label(self) -> str:
        return self.display_name or self.account_id


@dataclass(frozen=True)
class Thresholds:
    """Time boundaries derived from policy for a single run"""

    now: datetime
    inactivity_window_days: int
    notification_lead_days: int
    deactivation_cutoff: datetime
    notification_cutoff: datetime
    expiration_lead_days: Optional[int] = None
    expiration_warning_cutoff: Optional[datetime] = None


@dataclass(frozen=True)
class ClassificationResult:
    """Lifecycle category and recommended action for one account"""

    account_id: str
    category: Category
    recommended_action: Action
    days_inactive: int
    days_until_deactivation: int
    days_until_expiration: Optional[int] = None


@dataclass
class Outcome:
    """What the executor did (or would do, in dry-run) for one account"""

    account_id: str
    display_name: Optional[str]
    email_address: Optional[str]
    last_activity_at: Optional[datetime]
    expires_at: Optional[datetime]
    category: Category
    action: Action
    days_inactive: int
    days_until_deactivation: int
    days_until_expiration: Optional[int] = None
    dry_run: bool = False
    notified: bool = False
    notification_skipped: bool = False
    deactivated: bool = False
    already_disabled: bool = False
    errors: List[str] = field(default_factory=list)

    @classmethod
    def for_account(cls, account: Account, result: ClassificationResult, dry_run: bool) -> "Outcome":
        return cls(
            account_id=account.account_id,
            display_name=account.display_name,
            email_address=account.email_address,
            last_activity_at=account.last_activity_at,
            expires_at=account.expires_at,
            category=result.category,
            action=result.recommended_action,
            days_inactive=result.days_inactive,
            days_until_deactivation=result.days_until_deactivation,
            days_until_expiration=result.days_until_expiration,
            dry_run=dry_run,
        )

    @property
    def status(self) -> OutcomeStatus:
        if self.errors:
            return OutcomeStatus.ERROR
        if self.action is Action.NONE:
            return OutcomeStatus.NO_ACTION
        if self.action is Action.FLAG:
            return OutcomeStatus.FLAGGED
        if self.notified or self.deactivated:
            return OutcomeStatus.COMPLETED
        return OutcomeStatus.SKIPPED


@dataclass
class RunSummary:
    """Per-run accumulation of outcomes, discarded once the report is sent"""

    run_id: str
    started_at: datetime
    dry_run: bool
    outcomes: List[Outcome] = field(default_factory=list)
    category_counts: Counter = field(default_factory=Counter)
    status_counts: Counter = field(default_factory=Counter)
    finished_at: Optional[datetime] = None
    report_sent: bool = False

    @property
    def processed(self) -> int:
        return len(self.outcomes)

    @property
    def notified(self) -> int:
        return sum(1 for o in self.outcomes if o.notified)

    @property
    def deactivated(self) -> int:
        return sum(1 for o in self.outcomes if o.deactivated)

    @property
    def errors(self) -> int:
        return self.status_counts[OutcomeStatus.ERROR]
