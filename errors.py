# errors.py
# ==============================================================================
# Error taxonomy — every failure is terminal for the user action that hit it
# http_status is what the API layer answers with
# ==============================================================================


class SupplyChainError(Exception):
    """Base class for all application errors."""

    http_status = 500


# ------------------------------------------------------------------------------
# Validation / ingestion
# ------------------------------------------------------------------------------

class CsvValidationError(SupplyChainError):
    """Raised when an uploaded CSV has the wrong shape or bad values.

    Carries the (already truncated) list of human-readable messages.
    """

    http_status = 400

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class ImportFailedError(SupplyChainError):
    """Raised when a batch insert fails mid-import.

    Batches committed before the failure stay in storage.
    """

    def __init__(self, message, upload_id=None, inserted=0):
        self.upload_id = upload_id
        self.inserted = inserted
        super().__init__(message)


# ------------------------------------------------------------------------------
# LLM provider
# ------------------------------------------------------------------------------

class RateLimitError(SupplyChainError):
    """Provider answered HTTP 429."""

    http_status = 429


class QuotaExceededError(SupplyChainError):
    """Provider answered HTTP 402 (credits exhausted)."""

    http_status = 402


class LLMNotConfiguredError(SupplyChainError):
    """No API key for the LLM provider."""


class LLMResponseError(SupplyChainError):
    """Provider failed or replied without the requested tool call."""

    def __init__(self, message, status_code=None):
        self.status_code = status_code
        super().__init__(message)


class MissingToolCallError(LLMResponseError):
    """Reply came back without the forced tool call."""


class AnalysisError(SupplyChainError):
    pass


class CoordinationError(SupplyChainError):
    pass


# ------------------------------------------------------------------------------
# Text-to-speech
# ------------------------------------------------------------------------------

class TTSNotConfiguredError(SupplyChainError):
    """No TTS key; callers fall back to local speech synthesis."""

    http_status = 501


class TTSProviderError(SupplyChainError):
    http_status = 502
