"""File ingestion boundary.

Dispatches each file to the matching parser by suffix, merges the per-file
claim lists into one batch with dense ids, and applies the batch failure
policy. Every parse works only on its own buffer, so files are independent.
"""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path

from pydantic import BaseModel, Field

from claimsalytics.config import PayerAlias, PipelineConfig
from claimsalytics.errors import (
    BatchIngestError,
    EmptyBatchError,
    StructuralError,
    UnsupportedFileError,
)
from claimsalytics.io.delimited import parse_delimited_text
from claimsalytics.io.report import parse_report_grid
from claimsalytics.io.spreadsheet import read_first_sheet
from claimsalytics.schema import UNKNOWN_PROVIDER, ClaimRecord, claims_to_frame

logger = logging.getLogger(__name__)

TEXT_SUFFIXES = {".csv", ".tsv", ".txt"}
WORKBOOK_SUFFIXES = {".xlsx", ".xlsm", ".xls"}


class IngestResult(BaseModel):
    """Merged claims of one batch plus per-file bookkeeping."""

    claims: list[ClaimRecord] = Field(default_factory=list)
    file_counts: dict[str, int] = Field(
        default_factory=dict, description="File name -> claims extracted"
    )
    skipped: dict[str, str] = Field(
        default_factory=dict, description="File name -> error message (skip policy only)"
    )


def load_claim_file(
    path: Path,
    fallback_provider: str = "",
    payer_aliases: list[PayerAlias] | None = None,
) -> list[ClaimRecord]:
    """Parse one billing export file.

    Raises:
        FileNotFoundError: If the file does not exist.
        UnsupportedFileError: If the suffix is not a known text or workbook type.
        StructuralError: If the file's layout cannot be interpreted.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in TEXT_SUFFIXES | WORKBOOK_SUFFIXES:
        raise UnsupportedFileError(path.name)
    if not path.exists():
        raise FileNotFoundError(f"Claims file not found: {path}")

    if suffix in WORKBOOK_SUFFIXES:
        grid = read_first_sheet(path)
        return parse_report_grid(grid, fallback_provider, payer_aliases)

    text = path.read_text(encoding="utf-8-sig", errors="replace")
    return parse_delimited_text(text, fallback_provider, payer_aliases)


def merge_batches(batches: list[list[ClaimRecord]]) -> list[ClaimRecord]:
    """Concatenate claim lists and renumber ids 1..N across the whole batch."""
    merged: list[ClaimRecord] = []
    for batch in batches:
        for claim in batch:
            merged.append(claim.model_copy(update={"claim_id": len(merged) + 1}))
    return merged


def load_batch(paths: list[Path], config: PipelineConfig | None = None) -> IngestResult:
    """Parse and merge a batch of files.

    With the ``abort`` policy any structural error fails the whole batch;
    with ``skip`` the failing file is recorded and left out.

    Raises:
        ValueError: If more files than ``config.max_files`` are given.
        BatchIngestError: A file failed under the ``abort`` policy.
        EmptyBatchError: No claims were extracted from any file.
    """
    config = config or PipelineConfig()
    if len(paths) > config.max_files:
        raise ValueError(
            f"Maximum limit reached. Please upload up to {config.max_files} files at a time."
        )

    batches: list[list[ClaimRecord]] = []
    result = IngestResult()
    for path in paths:
        path = Path(path)
        try:
            claims = load_claim_file(path, config.default_provider, config.payer_aliases)
        except (StructuralError, ValueError, FileNotFoundError) as e:
            if config.batch_policy == "skip":
                logger.warning("Skipping %s: %s", path.name, e)
                result.skipped[path.name] = str(e)
                continue
            raise BatchIngestError(path.name, e) from e

        logger.info("%s: %d claims", path.name, len(claims))
        result.file_counts[path.name] = len(claims)
        batches.append(claims)

    result.claims = merge_batches(batches)
    if not result.claims:
        raise EmptyBatchError()
    return result


def dominant_provider(claims: list[ClaimRecord], preferred: str = "") -> str:
    """Provider label for a batch: the caller's choice, else the most frequent."""
    if preferred:
        return preferred
    counts = Counter(claim.provider for claim in claims)
    if not counts:
        return UNKNOWN_PROVIDER
    return counts.most_common(1)[0][0]


def save_claims(claims: list[ClaimRecord], path: Path) -> Path:
    """Save claims to Parquet.

    Returns:
        The path written to.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    claims_to_frame(claims).write_parquet(path)
    return path
