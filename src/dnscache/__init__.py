"""dnscache package"""

# Re-export the record types so callers can write `dnscache.QType.A`.
from .records import QType as QType
from .records import RecordStore as RecordStore
