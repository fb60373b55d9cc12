"""
Human-readable codes for requests, recipes, samples and tasting sheets.

    request        RD-0015
    recipe         RD-0015/01
    sample         RD-0015/01/03
    quick handoff  RD-0015/Q1
    tasting sheet  TS-2026-0007

Pure string logic. Sequence allocation (locking the parent row) lives in
rd_core.services.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional, Tuple

REQUEST_PREFIX = "RD"
TASTING_PREFIX = "TS"

REQUEST_CODE_RE = re.compile(r"^RD-(\d{4,})$")
SAMPLE_CODE_RE = re.compile(r"^(RD-\d{4,})/(\d{2,})/(\d{2,})$")
QUICK_CODE_RE = re.compile(r"^RD-\d{4,}/Q(\d+)$")


def format_request_code(seq: int) -> str:
    if seq < 1:
        raise ValueError("Request sequence must start at 1.")
    return f"{REQUEST_PREFIX}-{seq:04d}"


def request_seq_from_code(code: Optional[str]) -> Optional[int]:
    m = REQUEST_CODE_RE.match((code or "").strip())
    return int(m.group(1)) if m else None


def next_seq(existing: Iterable[Optional[int]]) -> int:
    """
    Next 1-based sequence number: max + 1. Inner gaps stay empty; the number
    of a deleted highest row is handed out again.
    """
    values = [int(v) for v in existing if v is not None]
    return max(values, default=0) + 1


def next_request_code(existing_codes: Iterable[str]) -> str:
    return format_request_code(next_seq(request_seq_from_code(c) for c in existing_codes))


def format_recipe_code(request_code: str, recipe_seq: int) -> str:
    if recipe_seq < 1:
        raise ValueError("Recipe sequence must start at 1.")
    return f"{request_code}/{recipe_seq:02d}"


def format_sample_code(recipe_code: str, sample_seq: int) -> str:
    if sample_seq < 1:
        raise ValueError("Sample sequence must start at 1.")
    return f"{recipe_code}/{sample_seq:02d}"


def format_quick_code(request_code: str, n: int) -> str:
    if n < 1:
        raise ValueError("Quick handoff number must start at 1.")
    return f"{request_code}/Q{n}"


def quick_seq_from_code(code: Optional[str]) -> Optional[int]:
    m = QUICK_CODE_RE.match((code or "").strip())
    return int(m.group(1)) if m else None


def parse_sample_code(code: str) -> Tuple[str, int, int]:
    """
    "RD-0015/01/03" -> ("RD-0015", 1, 3). Raises ValueError on other shapes.
    """
    m = SAMPLE_CODE_RE.match((code or "").strip())
    if not m:
        raise ValueError(f"Not a sample code: {code!r}")
    return m.group(1), int(m.group(2)), int(m.group(3))


def recipe_code_from_sample_code(code: str) -> str:
    request_code, recipe_seq, _ = parse_sample_code(code)
    return format_recipe_code(request_code, recipe_seq)


def format_tasting_sheet_no(year: int, seq: int) -> str:
    return f"{TASTING_PREFIX}-{year}-{seq:04d}"


def display_name(working_title: str, code: str) -> str:
    return f"{working_title.strip()} ({code})"
