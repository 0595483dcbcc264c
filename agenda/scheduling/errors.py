"""
Input-contract violations raised by the scheduling engine.

Business-rule rejections (OutsideWorkingHours, StaffOnTimeOff, SlotConflict)
are not exceptions; see types.ConflictReason and types.ValidationResult.
"""


class SchedulingError(Exception):
    code = "SchedulingError"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnknownStaffOrService(SchedulingError):
    code = "UnknownStaffOrService"
    status_code = 404


class BookingNotFound(SchedulingError):
    code = "BookingNotFound"
    status_code = 404


class InvalidTransition(SchedulingError):
    code = "InvalidTransition"
    status_code = 400

    def __init__(self, current: str, action: str):
        super().__init__(f"Não é possível executar '{action}' em um agendamento '{current}'")
        self.current = current
        self.action = action


class InvalidRecurrenceConfig(SchedulingError):
    code = "InvalidRecurrenceConfig"
    status_code = 422


class MalformedSchedule(SchedulingError):
    code = "MalformedSchedule"
    status_code = 400
