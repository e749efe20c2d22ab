"""
Domain validation module.

Provides syntactic acceptance of candidate domain names: total length, label
count, per-label length, charset and hyphen placement, and a non-numeric TLD.
Internationalized names are not accepted directly; the validation error carries
the IDNA (punycode) form the caller should submit instead.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Optional

import idna

from .enums import DomainValidationErrorCode

MAX_DOMAIN_LENGTH = 253
MAX_LABEL_LENGTH = 63

LABEL_PATTERN = re.compile(r"[a-z0-9-]+")
NUMERIC_PATTERN = re.compile(r"[0-9]+")


@dataclass
class DomainValidationError:
    """Structured error information for domain validation failures."""

    code: DomainValidationErrorCode
    message: str
    details: dict = field(default_factory=dict)


@dataclass
class DomainValidationResult:
    """Result of domain validation operation."""

    valid: bool
    canonical_domain: Optional[str]
    error: Optional[DomainValidationError]


def _reject(code: DomainValidationErrorCode, message: str, **details) -> DomainValidationResult:
    return DomainValidationResult(
        valid=False,
        canonical_domain=None,
        error=DomainValidationError(code=code, message=message, details=details),
    )


class DomainValidator:
    """
    Validates candidate domain names.

    The validator is pure: no I/O and no state beyond constants, so a single
    instance can be shared across concurrent requests.
    """

    def check(self, raw_domain: Any) -> DomainValidationResult:
        """
        Validate a domain and explain any rejection.

        Args:
            raw_domain: The candidate, usually a string from request JSON

        Returns:
            DomainValidationResult with the lowercase canonical form or an error
        """
        if not isinstance(raw_domain, str):
            return _reject(
                DomainValidationErrorCode.NOT_A_STRING,
                "Domain must be a string",
            )

        if not raw_domain:
            return _reject(DomainValidationErrorCode.EMPTY_INPUT, "Domain input is empty")

        if len(raw_domain) > MAX_DOMAIN_LENGTH:
            return _reject(
                DomainValidationErrorCode.TOO_LONG,
                f"Domain exceeds {MAX_DOMAIN_LENGTH} characters",
                length=len(raw_domain),
            )

        domain = raw_domain.lower()

        if any(ord(c) > 127 for c in domain):
            return self._reject_idn(domain)

        labels = domain.split(".")
        if len(labels) < 2:
            return _reject(
                DomainValidationErrorCode.TOO_FEW_LABELS,
                "Domain must contain at least two labels",
            )

        for index, label in enumerate(labels):
            if not self.is_valid_label(label):
                return _reject(
                    DomainValidationErrorCode.INVALID_LABEL,
                    "Domain contains an invalid label",
                    label_index=index,
                )

        if NUMERIC_PATTERN.fullmatch(labels[-1]):
            return _reject(
                DomainValidationErrorCode.NUMERIC_TLD,
                "Top-level label must not be numeric",
            )

        return DomainValidationResult(valid=True, canonical_domain=domain, error=None)

    def validate(self, raw_domain: Any) -> bool:
        """Return True if the candidate is an acceptable domain name."""
        return self.check(raw_domain).valid

    @staticmethod
    def is_valid_label(label: str) -> bool:
        """Check one label: 1-63 chars of [a-z0-9-], no edge hyphens."""
        if not label or len(label) > MAX_LABEL_LENGTH:
            return False
        if label.startswith("-") or label.endswith("-"):
            return False
        return bool(LABEL_PATTERN.fullmatch(label))

    def _reject_idn(self, domain: str) -> DomainValidationResult:
        try:
            suggestion = idna.encode(domain, uts46=True).decode("ascii")
        except idna.IDNAError:
            suggestion = None

        details = {"ace_form": suggestion} if suggestion else {}
        return _reject(
            DomainValidationErrorCode.IDN_NOT_ENCODED,
            "Internationalized domains must be submitted in ASCII (punycode) form",
            **details,
        )


_default_validator = DomainValidator()


def validate_domain(raw_domain: Any) -> bool:
    """Module-level shortcut for DomainValidator().validate()."""
    return _default_validator.validate(raw_domain)
