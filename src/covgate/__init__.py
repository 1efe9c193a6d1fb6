"""covgate - deterministic coverage, diff-coverage and waiver gates for CI."""

__version__ = "0.1.0"
