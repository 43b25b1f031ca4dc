"""Configuration models for the claims analytics pipeline.

All ingestion behavior that is meant to be tuned per deployment is held here:
the fallback provider, the payer alias table, the batch size limit and the
batch failure policy.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field


class PayerAlias(BaseModel):
    """One payer family: every matching raw name is rewritten to ``canonical``."""

    canonical: str = Field(description="Label emitted for every matching payer name")
    contains: list[str] = Field(
        default_factory=list,
        description="Uppercase substrings; a raw name containing any of them matches",
    )
    exact: list[str] = Field(
        default_factory=list,
        description="Uppercase tokens; a raw name equal to any of them matches",
    )

    def matches(self, upper_name: str) -> bool:
        """Match an already trimmed and uppercased payer name."""
        if upper_name in self.exact:
            return True
        return any(fragment in upper_name for fragment in self.contains)


DEFAULT_PAYER_ALIASES: list[PayerAlias] = [
    PayerAlias(
        canonical="UnitedHealthcare",
        contains=["UNITED HEALTH", "UNITEDHEALTH", "UHC"],
        exact=["UNITED"],
    ),
]


class PipelineConfig(BaseModel):
    """Top-level configuration for ingestion and analytics."""

    default_provider: str = Field(
        default="", description="Provider used when a file carries no provider name"
    )
    output_dir: Path = Field(default=Path("output"), description="Root output directory")
    max_files: int = Field(default=12, ge=1, description="Maximum files per batch")
    batch_policy: Literal["abort", "skip"] = Field(
        default="abort",
        description="'abort' fails the whole batch on a structural error; "
        "'skip' drops only the failing file",
    )
    payer_aliases: list[PayerAlias] = Field(
        default_factory=lambda: [alias.model_copy(deep=True) for alias in DEFAULT_PAYER_ALIASES]
    )
