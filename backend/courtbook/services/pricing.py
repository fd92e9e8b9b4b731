"""
Pricing Calculator

price = hourly_rate x (duration_minutes / 60), rounded to cents.

The hourly rate for a slot is the court's price_per_hour, optionally
overridden by the highest-priority active PricingRule that matches the court,
the weekday and the slot's start time. A court with no price uses
FALLBACK_HOURLY_RATE instead of failing the booking.

Aggregated bookings are priced as the sum of each slot's own price, never
as rate x merged duration, so per-hour overrides survive merging.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Sequence

from sqlmodel import Session, select

from courtbook.models.court import Court
from courtbook.models.pricing_rule import PricingRule
from courtbook.services.time_interval import TimeInterval, time_to_minutes
from courtbook.settings import FALLBACK_HOURLY_RATE

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_price(hourly_rate: Decimal, interval: TimeInterval) -> Decimal:
    return to_money(Decimal(hourly_rate) * interval.duration_hours)


def rule_matches(rule: PricingRule, court: Court, interval: TimeInterval) -> bool:
    if not rule.is_active:
        return False
    if rule.court_ids and court.id not in rule.court_ids:
        return False
    if rule.days_of_week:
        weekday = WEEKDAY_NAMES[interval.day.weekday()]
        if weekday not in [d.lower() for d in rule.days_of_week]:
            return False
    if rule.start_time is not None and interval.start < time_to_minutes(rule.start_time):
        return False
    if rule.end_time is not None and interval.start >= time_to_minutes(rule.end_time):
        return False
    return True


def apply_rule(rule: PricingRule, base_rate: Decimal) -> Decimal:
    if rule.price_type == "fixed" and rule.base_price is not None:
        return Decimal(rule.base_price)
    if rule.price_type == "percentage" and rule.percentage_modifier is not None:
        return base_rate * Decimal(rule.percentage_modifier) / Decimal(100)
    if rule.price_type == "discount" and rule.discount_amount is not None:
        return max(base_rate - Decimal(rule.discount_amount), Decimal(0))
    return base_rate


class PricingCalculator:
    def __init__(self, rules: Sequence[PricingRule] = (), fallback_rate: Decimal = FALLBACK_HOURLY_RATE):
        # Highest priority first; id keeps ties deterministic
        self.rules: List[PricingRule] = sorted(rules, key=lambda r: (-(r.priority or 0), r.id or 0))
        self.fallback_rate = Decimal(fallback_rate)

    @classmethod
    def for_tenant(cls, session: Session, tenant_id: int) -> "PricingCalculator":
        rules = session.exec(
            select(PricingRule).where(PricingRule.tenant_id == tenant_id, PricingRule.is_active)
        ).all()
        return cls(rules)

    def court_rate(self, court: Court) -> Decimal:
        if court.price_per_hour is None:
            logger.warning("Court %s has no hourly rate; using fallback %s", court.id, self.fallback_rate)
            return self.fallback_rate
        return Decimal(court.price_per_hour)

    def matching_rule(self, court: Court, interval: TimeInterval) -> Optional[PricingRule]:
        for rule in self.rules:
            if rule_matches(rule, court, interval):
                return rule
        return None

    def hourly_rate(self, court: Court, interval: TimeInterval) -> Decimal:
        base_rate = self.court_rate(court)
        rule = self.matching_rule(court, interval)
        if rule is None:
            return base_rate
        return apply_rule(rule, base_rate)

    def price(self, court: Court, interval: TimeInterval) -> Decimal:
        return compute_price(self.hourly_rate(court, interval), interval)

    def total(self, court: Court, intervals: Iterable[TimeInterval]) -> Decimal:
        return to_money(sum((self.price(court, i) for i in intervals), Decimal(0)))
