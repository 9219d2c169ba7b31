"""
Domain models for flagquery.

Defines the output record for a single row of the `flag` table (see
`db/init.sql`) and the raw row shape produced by the database layer.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, Field

# Rows come back from psycopg's dict_row factory keyed by column name.
FlagRow = Mapping[str, Any]


class FlagRecord(BaseModel):
    """
    Output-facing representation of a flag.

    Every field is required but nullable: a NULL or missing column is carried
    through as an explicit None rather than a default value.
    """

    id: Optional[Union[int, str]] = Field(..., description="Opaque flag identifier.")
    code: Optional[str] = Field(..., description="Short flag code.")
    state: Optional[int] = Field(..., description="Integer status.")
    data: Optional[str] = Field(..., description="Opaque text payload.")
    last_update: Optional[str] = Field(
        ..., alias="lastUpdate", description="UTC timestamp of the last update (RFC 3339)."
    )

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "arbitrary_types_allowed": False,
    }


__all__ = ["FlagRecord", "FlagRow"]
