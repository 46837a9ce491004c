"""
errors.py - Exception taxonomy for the signup service.

Every error is scoped to a single request. The HTTP layer maps each class
to a status code through ``HTTP_STATUS``; see server.py.
"""


class SignupError(Exception):
    """Base class for all signup errors."""


class InvalidUsername(SignupError, ValueError):
    """Username is missing, badly formatted, or already exists on chain."""


class InvalidAccountType(SignupError, ValueError):
    """accountType is neither 'free' nor 'paid'."""


class DuplicateUsername(SignupError, ValueError):
    """A ledger record already holds this username."""


class MalformedAmount(SignupError, ValueError):
    """A transfer amount is not of the form '<magnitude> <UNIT>'."""


class NotFound(SignupError, LookupError):
    """No record matched, or the record already left the expected state."""


class AlreadyCreated(SignupError):
    """The Hive account for this record was already created."""


class CreationInProgress(SignupError):
    """Another caller is creating the Hive account for this record."""


class UpstreamUnavailable(SignupError, RuntimeError):
    """Price feed, Hive RPC, or account-creation service call failed."""


HTTP_STATUS = {
    InvalidUsername: 400,
    InvalidAccountType: 400,
    DuplicateUsername: 400,
    MalformedAmount: 400,
    NotFound: 404,
    AlreadyCreated: 409,
    CreationInProgress: 409,
    UpstreamUnavailable: 503,
}


def status_for(exc: SignupError) -> int:
    for cls in type(exc).__mro__:
        if cls in HTTP_STATUS:
            return HTTP_STATUS[cls]
    return 500
