class DomainError(Exception):
    """Base class for all domain-level errors."""

    pass


class InvalidStatusTransition(DomainError):
    """Tried to change an account's or a challenge's state in a way that's not allowed."""

    pass


class OtpError(DomainError):
    """
    Negative outcome of an OTP operation.

    `message` is safe to show to the end user: it never says whether an
    account exists or which part of a code was wrong. `detail` is for logs.
    """

    message = "verification failed"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail
        super().__init__(detail or self.message)


class TooSoon(OtpError):
    """A new code was requested before the resend cooldown elapsed."""

    message = "please wait before requesting a new code"

    def __init__(self, remaining_seconds: int) -> None:
        self.remaining_seconds = remaining_seconds
        super().__init__()


class NoActiveChallenge(OtpError):
    """Resend asked for, but there is no pending code to replace."""

    message = "no pending verification, please register again"


class InvalidCode(OtpError):
    """Unknown, expired or already used code."""

    message = "invalid or expired code"


class CodeExhausted(OtpError):
    """The attempt budget of the current code is spent."""

    message = "too many failed attempts, please register again"


class CodeMismatch(OtpError):
    """Wrong code, attempts remain."""

    message = "incorrect code"

    def __init__(self, attempts_remaining: int) -> None:
        self.attempts_remaining = attempts_remaining
        super().__init__()


class DeliveryFailed(OtpError):
    """The email provider rejected the message or could not be reached."""

    message = "could not send the verification email, try again"


class DeliveryUncertain(OtpError):
    """The email provider did not answer in time; the email may still arrive."""

    message = "verification email may be delayed"


class StoreUnavailable(OtpError):
    """Challenge storage backend failed."""

    message = "service temporarily unavailable"


class CodeGenerationFailed(OtpError):
    """The OS entropy source failed."""

    message = "internal error"
