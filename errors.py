class TimeTrackerError(Exception):
    """Base for errors that are reported back to the user as a rejected operation."""
    code = 'ERROR'
    status = 400
    message = 'Request failed'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_dict(self):
        return {'error': self.message, 'code': self.code}


class AlreadyClockedIn(TimeTrackerError):
    code = 'ALREADY_CLOCKED_IN'
    message = 'Already clocked in'


class NotClockedIn(TimeTrackerError):
    code = 'NOT_CLOCKED_IN'
    message = 'Not clocked in'


class AlreadyClockedOut(TimeTrackerError):
    code = 'ALREADY_CLOCKED_OUT'
    message = 'Already clocked out'


class EntryNotFound(TimeTrackerError):
    code = 'ENTRY_NOT_FOUND'
    status = 404
    message = 'Entry not found'


class NoEntries(TimeTrackerError):
    code = 'NO_ENTRIES'
    status = 404
    message = 'No entries found'


class ValidationError(TimeTrackerError):
    code = 'VALIDATION'
    message = 'Invalid request'


class NotificationSendFailed(TimeTrackerError):
    code = 'NOTIFICATION_SEND_FAILED'
    status = 502
    message = 'Push notification failed'


class MailSendFailed(TimeTrackerError):
    code = 'MAIL_SEND_FAILED'
    status = 502
    message = 'Failed to send email'
