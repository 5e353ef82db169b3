"""
errors.py

Typed error hierarchy shared by every layer of the kernel.

Each error carries an HTTP status, a machine-readable ``code`` and a
human message. Services raise these directly; the exception handlers
registered in gnl_auth.main render them into the error envelope
``{success, message, error, code, timestamp}``.

Kinds:
- Client          : InvalidRequest, Validation, Unauthorized, Forbidden, NotFound, Conflict
- Authentication  : InvalidCredentials, InvalidToken, SessionRevoked, TwoFactorRequired, InvalidCode ...
- Token signer    : InvalidSignature, Expired, Malformed, UnexpectedAlgorithm
- Server          : Internal, StoreUnavailable, Timeout

Related files:
- gnl_auth.core.api_response : envelope builders
- gnl_auth.main              : exception handlers

"""


class AppError(Exception):
    status_code = 500
    code = "INTERNAL"
    error = "Internal Server Error"
    message = "Internal server error"

    def __init__(self, message: str | None = None, *, details=None):
        if message is not None:
            self.message = message
        self.details = details
        super().__init__(self.message)


# client errors

class InvalidRequest(AppError):
    status_code = 400
    code = "INVALID_REQUEST"
    error = "Bad Request"
    message = "Invalid request"


class Validation(AppError):
    status_code = 422
    code = "VALIDATION_ERROR"
    error = "Validation Error"
    message = "Validation error"


class Unauthorized(AppError):
    status_code = 401
    code = "UNAUTHORIZED"
    error = "Unauthorized"
    message = "Not authenticated"


class Forbidden(AppError):
    status_code = 403
    code = "FORBIDDEN"
    error = "Forbidden"
    message = "Insufficient privileges"


class NotFound(AppError):
    status_code = 404
    code = "NOT_FOUND"
    error = "Not Found"
    message = "Resource not found"


class Conflict(AppError):
    status_code = 409
    code = "CONFLICT"
    error = "Conflict"
    message = "Resource already exists"


Duplicate = Conflict


class DuplicateEmail(Conflict):
    code = "DUPLICATE_EMAIL"
    message = "Email already exists"


class DuplicateUsername(Conflict):
    code = "DUPLICATE_USERNAME"
    message = "Username already exists"


# authentication errors

class InvalidCredentials(Unauthorized):
    code = "INVALID_CREDENTIALS"
    message = "Invalid email or password"


class InvalidPassword(InvalidCredentials):
    code = "INVALID_PASSWORD"
    message = "Invalid password"


class InvalidToken(InvalidRequest):
    code = "INVALID_TOKEN"
    message = "Invalid or expired token"


class InvalidRefreshToken(Unauthorized):
    code = "INVALID_REFRESH_TOKEN"
    message = "Invalid refresh token"


class SessionRevoked(Unauthorized):
    code = "SESSION_REVOKED"
    message = "Session is no longer active"


class UserDisabled(Unauthorized):
    code = "USER_DISABLED"
    message = "User account is disabled"


class TwoFactorRequired(Unauthorized):
    code = "TWO_FACTOR_REQUIRED"
    message = "Two-factor authentication required"


class TwoFANotEnrolled(InvalidRequest):
    code = "TWO_FACTOR_NOT_ENROLLED"
    message = "Two-factor authentication is not set up"


class InvalidCode(InvalidRequest):
    code = "INVALID_CODE"
    message = "Invalid verification code"


class WeakPassword(Validation):
    code = "WEAK_PASSWORD"
    message = "Password must be at least 8 characters and contain letters and digits"


class TermsNotAccepted(Validation):
    code = "TERMS_NOT_ACCEPTED"
    message = "You must accept the terms and conditions"


# token signer errors

class TokenError(Unauthorized):
    code = "INVALID_TOKEN"
    message = "Invalid token"


class InvalidSignature(TokenError):
    code = "INVALID_SIGNATURE"
    message = "Token signature is invalid"


class Expired(TokenError):
    code = "TOKEN_EXPIRED"
    message = "Token has expired"


class Malformed(TokenError):
    code = "MALFORMED_TOKEN"
    message = "Token is malformed"


class UnexpectedAlgorithm(TokenError):
    code = "UNEXPECTED_ALGORITHM"
    message = "Token signed with an unexpected algorithm"


# hasher

class HashingFailed(AppError):
    code = "HASHING_FAILED"
    message = "Password hashing failed"


# server errors

class Internal(AppError):
    pass


class StoreUnavailable(AppError):
    status_code = 503
    code = "STORE_UNAVAILABLE"
    error = "Service Unavailable"
    message = "Data store is temporarily unavailable"


class Timeout(AppError):
    status_code = 504
    code = "TIMEOUT"
    error = "Gateway Timeout"
    message = "Operation timed out"
