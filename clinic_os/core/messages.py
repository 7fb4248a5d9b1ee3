"""Bilingual message catalogue keyed by stable error/success code.

Business code raises errors by code only; the Arabic/English pair is looked
up here when a response is rendered.
"""

from __future__ import annotations

from pydantic import BaseModel


class BilingualMessage(BaseModel):
    ar: str
    en: str


_CATALOG: dict[str, tuple[str, str]] = {
    # Session structure
    "INVALID_SESSION_STRUCTURE": ("بنية الجلسة غير صالحة", "Invalid session structure"),
    "DUPLICATE_SESSION_ORDER": (
        "أرقام ترتيب الجلسات يجب أن تكون فريدة",
        "Session order numbers must be unique",
    ),
    "MAX_SESSIONS_EXCEEDED": (
        "لا يمكن أن تحتوي الخدمة على أكثر من 50 جلسة",
        "Service cannot have more than 50 sessions",
    ),
    "INVALID_SESSION_DURATION": (
        "مدة الجلسة يجب أن تكون بين 5 و 480 دقيقة",
        "Session duration must be between 5 and 480 minutes",
    ),
    "EMPTY_SESSION_NAME": ("اسم الجلسة لا يمكن أن يكون فارغاً", "Session name cannot be empty"),
    "INVALID_SESSION_ORDER": (
        "ترتيب الجلسة يجب أن يكون رقماً موجباً",
        "Session order must be a positive number",
    ),
    # Session references
    "SESSION_ID_REQUIRED": (
        "معرف الجلسة مطلوب للخدمات التي تحتوي على جلسات",
        "Session ID is required for services with sessions",
    ),
    "INVALID_SESSION_ID": (
        "معرف الجلسة غير صالح للخدمة المحددة",
        "Invalid session ID for the specified service",
    ),
    "SERVICE_HAS_NO_SESSIONS": (
        "الخدمة المحددة لا تحتوي على جلسات",
        "The specified service does not have sessions",
    ),
    # Booking
    "APPOINTMENT_CONFLICT": (
        "الطبيب لديه موعد آخر في هذا الوقت",
        "Doctor has another appointment at this time",
    ),
    "DUPLICATE_SESSION_BOOKING": (
        "هذا المريض لديه موعد نشط لهذه الجلسة بالفعل",
        "This patient already has an active appointment for this session",
    ),
    "COMPLETED_SESSION_REBOOKING": ("لا يمكن إعادة حجز جلسة مكتملة", "Cannot rebook a completed session"),
    "BATCH_BOOKING_FAILED": (
        "فشل الحجز الجماعي. لم يتم إنشاء أي مواعيد",
        "Batch booking failed. No appointments were created",
    ),
    "SERVICE_DELETED_CANNOT_BOOK": (
        "لا يمكن حجز مواعيد لخدمة محذوفة",
        "Cannot book appointments for a deleted service",
    ),
    "SERVICE_INACTIVE": ("الخدمة غير نشطة", "Service is inactive"),
    # Appointments
    "APPOINTMENT_NOT_FOUND": ("الموعد غير موجود", "Appointment not found"),
    "INVALID_STATUS_TRANSITION": ("انتقال الحالة غير صالح", "Invalid status transition"),
    # Services
    "SERVICE_NOT_FOUND": ("الخدمة غير موجودة", "Service not found"),
    "SERVICE_NAME_EXISTS": (
        "يوجد خدمة بنفس الاسم في هذه العيادة",
        "A service with this name already exists for this clinic",
    ),
    "SERVICE_HAS_ACTIVE_APPOINTMENTS": (
        "لا يمكن حذف الخدمة لوجود مواعيد نشطة",
        "Cannot delete service with active appointments",
    ),
    "CANNOT_REMOVE_SESSION_WITH_ACTIVE_APPOINTMENTS": (
        "لا يمكن إزالة الجلسة لأنها تحتوي على مواعيد نشطة",
        "Cannot remove session because it has active appointments",
    ),
    # Clinics
    "CLINIC_NOT_FOUND": ("العيادة غير موجودة", "Clinic not found"),
    "TARGET_CLINIC_NOT_FOUND": ("العيادة المستهدفة غير موجودة", "Target clinic not found"),
    "TARGET_CLINIC_REQUIRED": (
        "يجب تحديد العيادة المستهدفة للنقل",
        "Target clinic must be specified for transfer",
    ),
    "INVALID_TARGET_CLINIC": (
        "العيادة المستهدفة يجب أن تكون عيادة أخرى نشطة",
        "Target clinic must be a different, active clinic",
    ),
    "CLINIC_REQUIRES_TRANSFER": (
        "يرجى اختيار ما إذا كنت تريد الاحتفاظ بالأطباء أو نقلهم",
        "Please choose whether to keep or transfer doctors/staff",
    ),
    # Generic
    "UNAUTHORIZED": ("غير مصرح", "Invalid or missing API key"),
    "VALIDATION_ERROR": ("خطأ في التحقق", "Validation error"),
    "INTERNAL_ERROR": ("خطأ داخلي في الخادم", "Internal server error"),
    # Success
    "SERVICE_CREATED": ("تم إنشاء الخدمة بنجاح", "Service created successfully"),
    "SERVICE_UPDATED": ("تم تحديث الخدمة بنجاح", "Service updated successfully"),
    "SERVICE_DELETED": ("تم حذف الخدمة بنجاح", "Service deleted successfully"),
    "APPOINTMENT_CREATED": ("تم حجز الموعد بنجاح", "Appointment booked successfully"),
    "BATCH_BOOKING_SUCCEEDED": ("تم حجز جميع الجلسات بنجاح", "All sessions booked successfully"),
    "APPOINTMENT_STATUS_UPDATED": ("تم تحديث حالة الموعد", "Appointment status updated"),
    "CLINIC_STATUS_UPDATED": ("تم تحديث حالة العيادة بنجاح", "Clinic status updated successfully"),
    "STAFF_TRANSFERRED": ("تم نقل الموظفين بنجاح", "Staff transferred successfully"),
}


def message_for(code: str) -> BilingualMessage:
    """Look up the bilingual message for a code, falling back to the generic one."""
    ar, en = _CATALOG.get(code, _CATALOG["VALIDATION_ERROR"])
    return BilingualMessage(ar=ar, en=en)
