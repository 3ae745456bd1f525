"""
Input validation and normalization for batch checks.

A batch is a base label (no TLD) plus a set of TLDs, each with a leading
dot. Both are lowercased and IDNA-encoded; the TLD set is deduplicated and
sorted so that equal requests normalize to the same cache key.
"""

import re
from dataclasses import dataclass
from typing import Iterable

import idna

from .enums import DomainValidationErrorCode
from .exceptions import ValidationError

# Control characters, whitespace and symbols that never appear in a hostname
FORBIDDEN_CHARS_PATTERN = re.compile(
    r'[\x00-\x1f\x7f'
    r'\s'
    r'!@#$%^&*()+=\[\]{}|\\:;"\'<>,?/`~_]'
)

# An LDH label after IDNA encoding
LABEL_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")


@dataclass(frozen=True)
class BatchInput:
    """Normalized base label and TLD set."""

    base_name: str
    tlds: tuple[str, ...]

    @property
    def domains(self) -> list[str]:
        return [f"{self.base_name}{tld}" for tld in self.tlds]


class DomainValidator:
    """
    Validates and normalizes the base label and TLDs of a batch.

    Every failure raises ValidationError with a DomainValidationErrorCode.
    """

    def validate(self, base_name: str, tlds: Iterable[str]) -> BatchInput:
        """
        Validate a batch request.

        Args:
            base_name: Base label, e.g. 'example'
            tlds: TLDs, e.g. ['.com', 'io']

        Returns:
            BatchInput with the canonical label and sorted, unique TLDs

        Raises:
            ValidationError: On empty input, an empty TLD set or malformed labels
        """
        return BatchInput(
            base_name=self.normalize_label(base_name),
            tlds=self.normalize_tlds(tlds),
        )

    def normalize_label(self, raw: str) -> str:
        """Normalize a single label to lowercase ASCII (punycode for IDN)."""
        if not raw or not raw.strip():
            raise ValidationError(
                code=DomainValidationErrorCode.EMPTY_INPUT.value,
                message="Base domain name is empty",
                details={"raw_input": raw},
            )

        label = raw.strip().lower()

        forbidden = FORBIDDEN_CHARS_PATTERN.findall(label)
        if forbidden or "." in label:
            raise ValidationError(
                code=DomainValidationErrorCode.FORBIDDEN_CHARS.value,
                message="Base domain name contains forbidden characters",
                details={"raw_input": raw, "forbidden_chars": forbidden or ["."]},
            )

        label = self._to_ascii(label)
        if not LABEL_PATTERN.match(label):
            raise ValidationError(
                code=DomainValidationErrorCode.FORBIDDEN_CHARS.value,
                message=f"'{raw}' is not a valid domain label",
                details={"raw_input": raw, "canonical": label},
            )
        return label

    def normalize_tld(self, raw: str) -> str:
        """Normalize a TLD, adding the leading dot if it is missing."""
        tld = (raw or "").strip().lower().strip(".")
        if not tld:
            raise ValidationError(
                code=DomainValidationErrorCode.INVALID_TLD.value,
                message="TLD is empty",
                details={"raw_input": raw},
            )

        labels = []
        for part in tld.split("."):
            if not part or FORBIDDEN_CHARS_PATTERN.search(part):
                raise ValidationError(
                    code=DomainValidationErrorCode.INVALID_TLD.value,
                    message=f"Invalid TLD '{raw}'",
                    details={"raw_input": raw},
                )
            ascii_part = self._to_ascii(part)
            if not LABEL_PATTERN.match(ascii_part):
                raise ValidationError(
                    code=DomainValidationErrorCode.INVALID_TLD.value,
                    message=f"Invalid TLD '{raw}'",
                    details={"raw_input": raw, "canonical": ascii_part},
                )
            labels.append(ascii_part)
        return "." + ".".join(labels)

    def normalize_tlds(self, tlds: Iterable[str]) -> tuple[str, ...]:
        """Normalize, deduplicate and sort a TLD set."""
        normalized = {self.normalize_tld(tld) for tld in (tlds or ())}
        if not normalized:
            raise ValidationError(
                code=DomainValidationErrorCode.EMPTY_TLD_SET.value,
                message="At least one TLD is required",
            )
        return tuple(sorted(normalized))

    @staticmethod
    def _to_ascii(label: str) -> str:
        if all(ord(c) < 128 for c in label):
            return label
        try:
            return idna.encode(label, uts46=True).decode("ascii")
        except idna.IDNAError as e:
            raise ValidationError(
                code=DomainValidationErrorCode.IDNA_ERROR.value,
                message=f"IDNA encoding failed: {e}",
                details={"label": label, "idna_error": str(e)},
            )
