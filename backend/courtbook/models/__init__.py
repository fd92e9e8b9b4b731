from courtbook.models.client import Client
from courtbook.models.court import Court
from courtbook.models.court_day_lock import CourtDayLock
from courtbook.models.pricing_rule import PricingRule
from courtbook.models.reservation import Reservation
from courtbook.models.tenant import Tenant

__all__ = [
    "Tenant",
    "Court",
    "Client",
    "Reservation",
    "CourtDayLock",
    "PricingRule",
]
