from .service import Service, ServiceCreate, ServiceUpdate
from .booking import (
    Booking,
    BookingCreate,
    ManualBookingCreate,
    BookingCancel,
    BookingReschedule,
    BookingUpdate,
    BookingSearchResult,
)
from .capacity_override import (
    CapacityOverride,
    CapacityOverrideCreate,
    CapacityOverrideUpdate,
    CapacityImpactRequest,
    CapacityImpact,
    OverrideSaveResult,
)
from .availability import TimeSlot, DayAvailability, DaySummary
from .setting import ShopSettings, ShopSettingsUpdate, ConflictingDate, DefaultCapacityResult
from .customer import (
    CustomerList,
    CustomerListItem,
    CustomerNote,
    CustomerNoteCreate,
    CustomerNoteUpdate,
    CustomerSummary,
)
