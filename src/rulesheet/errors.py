# exception hierarchy shared by the service, api and cli layers


class RulesheetError(Exception):
    """Base class for all application errors"""


# input validation errors are shown to the user as-is
class InputValidationError(RulesheetError):
    pass


class EmptyUploadError(InputValidationError):
    def __init__(self, message: str = "No file uploaded."):
        super().__init__(message)


class InvalidFileTypeError(InputValidationError):
    def __init__(self, message: str = "Only PDF files are allowed."):
        super().__init__(message)


class FileTooLargeError(InputValidationError):
    def __init__(self, max_mb: int):
        self.max_mb = max_mb
        super().__init__(f"File too large. Maximum size is {max_mb}MB.")


class InsufficientTextError(InputValidationError):
    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(
            f"Could not extract enough text from {filename}. "
            "The file may be image-based or corrupted."
        )


class InvalidLinkError(InputValidationError):
    def __init__(self, message: str = "BGG link must be an http or https URL."):
        super().__init__(message)


# upstream capability errors get a generic message, details go to the log
class GenerationError(RulesheetError):
    pass


class PersistenceError(RulesheetError):
    pass


class SummaryNotFoundError(RulesheetError):
    def __init__(self, summary_id: str):
        self.summary_id = summary_id
        super().__init__(f"Summary not found: {summary_id}")


class PermissionDeniedError(RulesheetError):
    pass


class UploadLockedError(RulesheetError):
    pass


class AuthError(RulesheetError):
    """Identity provider failure carrying the provider error code"""

    def __init__(self, code: str, message: str = ""):
        self.code = code
        super().__init__(message or code)


class EmailNotVerifiedError(AuthError):
    def __init__(self):
        super().__init__(
            "auth/email-not-verified",
            "Please verify your email first. A new verification link has been sent.",
        )
