class TaskflowError(Exception):
    status_code = 400

    def to_dict(self):
        return {'success': False, 'error': str(self)}


class ValidationError(TaskflowError):
    """Missing or malformed field. Reported next to the offending field."""

    def __init__(self, field, message):
        super().__init__(message)
        self.field = field

    def to_dict(self):
        return {'success': False, 'error': str(self), 'field': self.field}


class ConstraintViolation(TaskflowError):
    # start/end order would invert
    status_code = 409


class NotFound(TaskflowError):
    status_code = 404

    def __init__(self, kind, entity_id):
        super().__init__(f'{kind} not found: {entity_id}')
        self.kind = kind
        self.entity_id = entity_id


class DuplicateEmail(TaskflowError):
    status_code = 409

    def __init__(self, email):
        super().__init__('Email already registered')
        self.email = email
