"""Pagination normalization.

Raw ``page`` / ``pageSize`` arguments are never rejected: bad values are
corrected and the correction is reported as a warning.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


@dataclass(frozen=True, slots=True)
class PaginationParams:
    """Canonical pagination window.

    Attributes:
        page: 1-based page number
        page_size: Items per page, 1..max_page_size
        warnings: Corrections applied while normalizing
    """

    page: int = DEFAULT_PAGE
    page_size: int = DEFAULT_PAGE_SIZE
    warnings: tuple[str, ...] = ()

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size

    @classmethod
    def of(cls, page: int | None, page_size: int | None, max_page_size: int = MAX_PAGE_SIZE,
           *, default_page_size: int = DEFAULT_PAGE_SIZE) -> PaginationParams:
        """Normalize raw arguments against a tool-specific maximum page size.

        Example:
            >>> p = PaginationParams.of(0, 500)
            >>> (p.page, p.page_size, p.offset)
            (1, 100, 0)
            >>> p.warnings
            ('Invalid page number 0, using page 1', 'Requested pageSize 500 exceeds maximum 100, capped to 100')
        """
        if not 1 <= max_page_size <= MAX_PAGE_SIZE:
            raise ValueError(f"max_page_size must be between 1 and {MAX_PAGE_SIZE}, got {max_page_size}")
        default_size = min(max(default_page_size, 1), max_page_size)
        warnings: list[str] = []

        resolved_page = DEFAULT_PAGE
        if page is not None:
            if page < 1:
                warnings.append(f"Invalid page number {page}, using page {DEFAULT_PAGE}")
            else:
                resolved_page = page

        resolved_size = default_size
        if page_size is not None:
            if page_size < 1:
                warnings.append(f"Invalid pageSize {page_size}, using default {default_size}")
            elif page_size > max_page_size:
                warnings.append(
                    f"Requested pageSize {page_size} exceeds maximum {max_page_size}, capped to {max_page_size}")
                resolved_size = max_page_size
            else:
                resolved_size = page_size

        return cls(page=resolved_page, page_size=resolved_size, warnings=tuple(warnings))

    def slice_bounds(self, total: int) -> tuple[int, int]:
        """[start, end) indices of this page within a list of ``total`` items."""
        start = min(self.offset, total)
        return start, min(self.offset + self.page_size, total)
