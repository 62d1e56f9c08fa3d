from .service import Service
from .booking import Booking, BookingStatus, BookingSource
from .capacity_override import CapacityOverride
from .setting import Setting
from .customer_note import CustomerNote
from .admin_user import AdminUser, AdminRole
from .audit_log import AuditLog, ActorType
