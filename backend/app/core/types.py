"""Custom SQLAlchemy types for cross-database compatibility"""
from decimal import Decimal, ROUND_HALF_UP
from sqlalchemy import TypeDecorator, String, Numeric
import uuid


def generate_uuid():
    """Generate a UUID string"""
    return str(uuid.uuid4())


class GUID(TypeDecorator):
    """Platform-independent GUID type that stores UUIDs as VARCHAR(36)"""
    impl = String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        return dialect.type_descriptor(String(36))

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            return str(value)
        return value


class Money(TypeDecorator):
    """
    Taka amount stored as NUMERIC(10, 2) and exposed as float.
    Values are rounded half-up to two decimals on the way in.
    """
    impl = Numeric(10, 2)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        return Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        return float(value)
