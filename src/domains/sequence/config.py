# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Sequence kinds, their configurations and identifier formatting.

Formatting is a pure function of the counter value and the configuration.
Uniqueness comes only from the integer counter; the formatted string is a
presentation of it.

Identifier layout:

    PREFIX<sep>[YEAR<sep>][TENANTCODE<sep>]NNNN[<sep>SUFFIX]

The numeric part is zero-padded to ``width``. Width is a minimum, so values
with more digits are never truncated:

    >>> cfg = DEFAULT_CONFIGS[SequenceKind.ADMISSION_NUMBER]
    >>> format_identifier(7, cfg, year=2025)
    'STU/2025/0007'
    >>> format_identifier(12345, cfg, year=2025)
    'STU/2025/12345'
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from src.core.errors import ValidationError
from src.models.sequence import SequenceKind

KEY_SEPARATOR = "_"
DEFAULT_TENANT_CODE_LENGTH = 6


@dataclass(frozen=True)
class SequenceConfig:
    """Formatting and keying rules for one sequence kind.

    Attributes:
        prefix: Leading identifier part, e.g. "STU".
        width: Minimum digits of the zero-padded counter.
        separator: String joining the identifier parts.
        include_year: Whether the calendar year appears in the identifier.
        include_tenant: Whether the tenant is folded into the counter key and
            a tenant code appears in the identifier.
        reset_annually: Whether each calendar year has its own counter.
        suffix: Optional trailing identifier part.
        version: Configuration revision. Bump when a default changes so that
            stored identifiers can be traced to the rules that produced them.
    """

    prefix: str
    width: int
    separator: str = "-"
    include_year: bool = True
    include_tenant: bool = False
    reset_annually: bool = True
    suffix: str | None = None
    version: int = 1

    def __post_init__(self) -> None:
        if self.width < 1:
            raise ValidationError("Sequence width must be at least 1")
        if not self.separator:
            raise ValidationError("Sequence separator must not be empty")

    def with_overrides(self, **changes: object) -> SequenceConfig:
        """Return a copy with some fields replaced.

        SequenceService.config_for() uses this to fold the tenant into kinds
        configured as per-school.
        """
        return replace(self, **changes)


DEFAULT_CONFIGS: dict[SequenceKind, SequenceConfig] = {
    SequenceKind.ADMISSION_NUMBER: SequenceConfig(
        prefix="STU", width=4, separator="/", include_year=True, reset_annually=True
    ),
    SequenceKind.EMPLOYEE_NUMBER: SequenceConfig(
        prefix="EMP", width=4, separator="-", include_year=True, reset_annually=False
    ),
    SequenceKind.RECEIPT_NUMBER: SequenceConfig(
        prefix="RCT", width=6, separator="/", include_year=True, reset_annually=True
    ),
    SequenceKind.INVOICE_NUMBER: SequenceConfig(
        prefix="INV", width=6, separator="/", include_year=True, reset_annually=True
    ),
    SequenceKind.ASSESSMENT_NUMBER: SequenceConfig(
        prefix="ASS", width=4, separator="-", include_year=True, reset_annually=True
    ),
    SequenceKind.CLASS_CODE: SequenceConfig(
        prefix="CLS", width=3, separator="-", include_year=True, reset_annually=True
    ),
}


def get_config(kind: SequenceKind) -> SequenceConfig:
    """Get the default configuration of a kind."""
    return DEFAULT_CONFIGS[kind]


def build_key(
    kind: SequenceKind,
    config: SequenceConfig,
    tenant_id: str | None,
    year: int,
) -> str:
    """Build the counter key for a kind.

    The key is ``KIND[_TENANT][_YEAR]``: the tenant part only when the
    configuration folds the tenant in, the year part only when the counter
    resets annually.
    """
    parts = [kind.value]
    if config.include_tenant and tenant_id:
        parts.append(tenant_id)
    if config.reset_annually:
        parts.append(str(year))
    return KEY_SEPARATOR.join(parts)


def tenant_code(tenant_id: str, length: int = DEFAULT_TENANT_CODE_LENGTH) -> str:
    """Short uppercase tenant fragment used inside identifiers."""
    return tenant_id[:length].upper()


def format_identifier(
    value: int,
    config: SequenceConfig,
    year: int,
    tenant_id: str | None = None,
    tenant_code_length: int = DEFAULT_TENANT_CODE_LENGTH,
) -> str:
    """Format a counter value as a human-readable identifier.

    Args:
        value: Counter value.
        config: Formatting rules.
        year: Calendar year to embed when include_year is set.
        tenant_id: Tenant to embed when include_tenant is set.
        tenant_code_length: Characters of the tenant id to embed.

    Returns:
        The formatted identifier.
    """
    parts: list[str] = []
    if config.prefix:
        parts.append(config.prefix)
    if config.include_year:
        parts.append(str(year))
    if config.include_tenant and tenant_id:
        parts.append(tenant_code(tenant_id, tenant_code_length))
    parts.append(str(value).zfill(config.width))
    if config.suffix:
        parts.append(config.suffix)
    return config.separator.join(parts)


def decode_value(identifier: str, config: SequenceConfig) -> int:
    """Recover the counter value from a formatted identifier.

    Args:
        identifier: Identifier produced by format_identifier().
        config: Configuration it was produced with.

    Returns:
        The integer counter value.

    Raises:
        ValidationError: If the identifier does not match the configuration.
    """
    body = identifier
    if config.prefix:
        head = f"{config.prefix}{config.separator}"
        if not body.startswith(head):
            raise ValidationError(f"Identifier {identifier!r} does not start with {head!r}")
        body = body[len(head):]
    if config.suffix:
        tail = f"{config.separator}{config.suffix}"
        if not body.endswith(tail):
            raise ValidationError(f"Identifier {identifier!r} does not end with {tail!r}")
        body = body[: -len(tail)]

    number = body.rsplit(config.separator, 1)[-1]
    if not number.isdigit() or len(number) < config.width:
        raise ValidationError(f"Identifier {identifier!r} has no valid counter part")
    return int(number)
