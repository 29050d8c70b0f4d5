"""
Per-call slicing options.

The post-processing policy is a tagged variant: a slice either recenters
every piece on an opaque pivot pixel, or filters out near-empty pieces by
opaque ratio. The two never combine.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class PivotCorrect(BaseModel):
    """Trim each piece to its opaque bounds and center it on an opaque pivot pixel.

    Pieces are never dropped, so no visible source content is lost.
    """

    mode: Literal["pivot"] = "pivot"


class RatioFilter(BaseModel):
    """Keep the raw cell bounding box, dropping pieces that are mostly transparent."""

    mode: Literal["ratio"] = "ratio"
    min_opaque_ratio: float = Field(
        default=0.01, ge=0.0, le=1.0,
        description="Pieces with opaque/total pixel ratio below this are discarded"
    )


ExtractionStrategy = Annotated[
    Union[PivotCorrect, RatioFilter],
    Field(discriminator="mode"),
]


class SliceOptions(BaseModel):
    """Options for one slice invocation."""

    alpha_threshold: int = Field(
        default=8, ge=0, le=255, description="Minimum alpha counted as opaque"
    )
    include_outline: bool = Field(
        default=True, description="Stroke cell outlines in the preview (rendering only)"
    )
    strategy: ExtractionStrategy = Field(
        default_factory=PivotCorrect, description="Post-processing policy"
    )

    @classmethod
    def from_flags(cls, recenter_pivot_to_opaque: bool = True,
                   min_opaque_ratio: float = 0.01, **kwargs) -> "SliceOptions":
        """Build options from the boolean-flag form of the configuration."""
        if recenter_pivot_to_opaque:
            strategy = PivotCorrect()
        else:
            strategy = RatioFilter(min_opaque_ratio=min_opaque_ratio)
        return cls(strategy=strategy, **kwargs)
