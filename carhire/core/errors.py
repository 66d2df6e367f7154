"""
DOMAIN ERRORS

Raised by services, rendered by the handler registered in main.py.
"""


class DomainError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


#Booking / vehicle id or code could not be resolved
class NotFoundError(DomainError):
    status_code = 404


#Overlap detected at write time
class ConflictError(DomainError):
    status_code = 409


#Missing or malformed input
class ValidationError(DomainError):
    status_code = 400


#Repository unreachable or misconfigured
class UpstreamError(DomainError):
    status_code = 500
