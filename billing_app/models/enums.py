from enum import Enum


class ChargedBy(str, Enum):
    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"
    PROJECT = "project"


class PricingMode(str, Enum):
    AUTO = "auto"
    MANUAL_RATE = "manual_rate"
    MANUAL_TOTAL = "manual_total"


class ClientStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"
    PAYMENT_EXPIRED = "payment_expired"


class WorkStatus(str, Enum):
    PROCESSING = "processing"
    DELIVERED = "delivered"


class PaymentMedium(str, Enum):
    BKASH = "bkash"
    NAGAD = "nagad"
    BANK = "bank"
    CASH = "cash"
    OTHER = "other"
