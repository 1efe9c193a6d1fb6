"""Error taxonomy for covgate commands.

Every error carries the process exit code the CLI should use, so operators
can tell a misconfigured tool (exit 2) from a missing artifact or a runtime
failure (exit 1). Gate violations are not errors; they are reported through
``GateResult``.
"""

from __future__ import annotations

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID_CONFIG = 2

REASON_MISSING_ARTIFACT = "MISSING_ARTIFACT"
REASON_ARTIFACT_FORMAT = "ARTIFACT_FORMAT"
REASON_INVALID_CONFIGURATION = "INVALID_CONFIGURATION"


class CovgateError(RuntimeError):
    """Base class for fatal covgate errors."""

    exit_code: int = EXIT_FAILED
    reason_code: str = "RUNTIME_FAILURE"

    def __init__(self, message: str, reason_code: str | None = None) -> None:
        super().__init__(message)
        if reason_code is not None:
            self.reason_code = reason_code


class MissingArtifactError(CovgateError):
    """Raised when a required input artifact (coverage, diff, ledger) is absent."""

    reason_code = REASON_MISSING_ARTIFACT


class ArtifactFormatError(CovgateError):
    """Raised when an artifact exists but cannot be decoded at all."""

    reason_code = REASON_ARTIFACT_FORMAT


class InvalidConfigurationError(CovgateError, ValueError):
    """Raised for non-numeric thresholds, unparseable summary values, bad config files."""

    exit_code = EXIT_INVALID_CONFIG
    reason_code = REASON_INVALID_CONFIGURATION
