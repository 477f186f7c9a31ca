"""Depletion projections, urgency classification and stock mutations.

Read side: ``build_view`` turns a snapshot of the store into the structures a
front-end renders (per-drug remaining weeks, urgency, aggregate pill counts).
Write side: ``replenish``, ``reduce_stock`` and ``take_days`` are the only
functions that change stock; each runs under the store's lock and flushes the
store to disk before returning.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from typing import List, Mapping, Optional

from reserve_config import ColumnKind, ReserveConfig
from reserve_errors import InvalidAmount, InvalidFraction, ReserveError
from reserve_fractions import ZERO, add, format_fraction, parse_rational, scale_by_integer, sub
from reserve_model import DAYS_PER_WEEK, Drug, ReserveStore, drug_at

logger = logging.getLogger(__name__)


class UrgencyClass(Enum):
    OK = "ok"
    REPLENISH_SOON = "replenish-soon"
    REPLENISH_NOW = "replenish-now"


@dataclass
class PillCounts:
    morning: Fraction = ZERO
    noon: Fraction = ZERO
    evening: Fraction = ZERO
    night: Fraction = ZERO

    def total(self) -> Fraction:
        return self.morning + self.noon + self.evening + self.night


@dataclass
class DrugView:
    index: int
    drug: Drug
    remaining_weeks: Optional[int]
    weeks_per_prescription: Optional[int]
    urgency: UrgencyClass


@dataclass
class ReserveView:
    profile_columns: List[ColumnKind]
    drugs_to_display: List[DrugView]
    pill_counts: PillCounts
    min_weeks_per_prescription: int
    hide_ui: bool


def _whole_weeks(amount: Fraction, drug: Drug) -> Optional[int]:
    weekly = drug.weekly_dosage()
    if weekly == 0:
        return None
    # Truncated, so the figure is the number of weeks that are certainly covered.
    return int(amount / weekly)


def remaining_weeks(drug: Drug) -> Optional[int]:
    """Whole weeks the current stock lasts, or None without a fixed schedule."""
    return _whole_weeks(drug.remaining, drug)


def weeks_per_prescription(drug: Drug) -> Optional[int]:
    """Whole weeks one full prescription lasts, or None without a fixed schedule."""
    return _whole_weeks(drug.prescription_units(), drug)


def classify_weeks(weeks: Optional[int], min_weeks_threshold: int) -> UrgencyClass:
    if weeks is None:
        return UrgencyClass.OK
    if weeks <= 0:
        return UrgencyClass.REPLENISH_NOW
    if weeks < min_weeks_threshold:
        return UrgencyClass.REPLENISH_SOON
    return UrgencyClass.OK


def needs_replenishment(drug: Drug, min_weeks_threshold: int) -> UrgencyClass:
    return classify_weeks(remaining_weeks(drug), min_weeks_threshold)


def pill_counts(drugs: List[Drug], include_hidden: bool = False) -> PillCounts:
    """Sum each time-of-day dosage over the (by default only visible) drugs."""
    counts = PillCounts()
    for drug in drugs:
        if not drug.show and not include_hidden:
            continue
        counts.morning = add(counts.morning, drug.dosage_morning)
        counts.noon = add(counts.noon, drug.dosage_noon)
        counts.evening = add(counts.evening, drug.dosage_evening)
        counts.night = add(counts.night, drug.dosage_night)
    return counts


def drug_views(drugs: List[Drug], min_weeks_threshold: int) -> List[DrugView]:
    """Views of the visible drugs; ``index`` is the drug's position in the store."""
    views = []
    for index, drug in enumerate(drugs):
        if not drug.show:
            continue
        weeks = remaining_weeks(drug)
        views.append(DrugView(
            index=index,
            drug=drug,
            remaining_weeks=weeks,
            weeks_per_prescription=weeks_per_prescription(drug),
            urgency=classify_weeks(weeks, min_weeks_threshold),
        ))
    return views


def build_view(store: ReserveStore, config: ReserveConfig, profile: Optional[str] = None,
               hide_ui: bool = False) -> ReserveView:
    """Everything a front-end needs for one page, taken from a single snapshot."""
    drugs = store.snapshot()
    return ReserveView(
        profile_columns=config.columns_for(profile),
        drugs_to_display=drug_views(drugs, config.min_weeks_per_prescription),
        pill_counts=pill_counts(drugs, include_hidden=config.count_hidden_in_pill_counts),
        min_weeks_per_prescription=config.min_weeks_per_prescription,
        hide_ui=hide_ui,
    )


def parse_amount(value) -> Fraction:
    """Parse a stock amount; it must be a strictly positive exact quantity."""
    try:
        amount = parse_rational(value)
    except InvalidFraction as e:
        logger.warning("rejected amount %r: %s", value, e)
        raise InvalidAmount(f"invalid amount {value!r}") from e
    if amount <= 0:
        logger.warning("rejected non-positive amount %s", amount)
        raise InvalidAmount(f"amount must be greater than 0, got {format_fraction(amount)}")
    return amount


def parse_days(value) -> int:
    """Parse a day count; it must be a positive integer."""
    if isinstance(value, str) and value.strip().isdecimal():
        try:
            value = int(value.strip())
        except ValueError:
            raise InvalidAmount(f"days must be a positive integer, got {value[:40]!r}") from None
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        logger.warning("rejected day count %r", value)
        raise InvalidAmount(f"days must be a positive integer, got {value!r}")
    return value


def parse_index(value) -> int:
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            raise InvalidAmount(f"invalid drug index {value!r}") from None
    return value


def replenish(store: ReserveStore, index: int, amount) -> Fraction:
    """Add ``amount`` units to one drug's stock and flush; returns the new stock."""
    amount = parse_amount(amount)
    with store.mutate() as drugs:
        drug = drug_at(drugs, index)
        drug.remaining = add(drug.remaining, amount)
        logger.info("replenished drug %d (%s) by %s", index, drug.trade_name, format_fraction(amount))
        return drug.remaining


def reduce_stock(store: ReserveStore, index: int, amount) -> Fraction:
    """Take ``amount`` units away from one drug's stock, e.g. a lost pill."""
    amount = parse_amount(amount)
    with store.mutate() as drugs:
        drug = drug_at(drugs, index)
        drug.remaining = sub(drug.remaining, amount)
        logger.info("reduced drug %d (%s) by %s", index, drug.trade_name, format_fraction(amount))
        return drug.remaining


def take_days(store: ReserveStore, days: int) -> None:
    """Consume ``days`` days of the dosage schedule from every drug.

    Hidden drugs are consumed too and stock is not clamped at zero. The store
    is flushed once after all drugs are updated. If something fails partway
    through the loop, drugs already updated stay updated.
    """
    days = parse_days(days)
    with store.mutate() as drugs:
        for drug in drugs:
            drug.remaining = sub(drug.remaining, scale_by_integer(drug.daily_dosage(), days))
        logger.info("took %d days of dosage from %d drugs", days, len(drugs))


def take_week(store: ReserveStore) -> None:
    take_days(store, DAYS_PER_WEEK)


def apply_action(store: ReserveStore, form: Mapping[str, str]) -> None:
    """Dispatch a submitted form by its ``do`` tag.

    Recognized tags: ``replenish`` and ``reduce`` (``drug-index``, ``amount``),
    ``take-days`` (``days``) and ``take-week``.
    """
    action = form.get("do")
    if not action:
        raise ReserveError('missing value for "do"')

    if action in ("replenish", "reduce"):
        if "drug-index" not in form:
            raise InvalidAmount('missing value for "drug-index"')
        if "amount" not in form:
            raise InvalidAmount('missing value for "amount"')
        index = parse_index(form["drug-index"])
        if action == "replenish":
            replenish(store, index, form["amount"])
        else:
            reduce_stock(store, index, form["amount"])
    elif action == "take-days":
        if "days" not in form:
            raise InvalidAmount('missing value for "days"')
        take_days(store, form["days"])
    elif action == "take-week":
        take_week(store)
    else:
        raise ReserveError(f'unknown value for "do": {action!r}')
