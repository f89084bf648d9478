"""
JSON schema for profiler output.

The schema is stable across minor versions.
Breaking changes only in major versions.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class NodeSchema(BaseModel):
    """Schema for one instantiation node."""

    model_config = ConfigDict(frozen=True)

    key: int = Field(..., description="Instantiation fingerprint")
    version: int = Field(..., description="Re-instantiation counter of the fingerprint")
    name: str = Field(..., description="Name of the instantiated quantifier")


class EdgeSchema(BaseModel):
    """Schema for one 'produced a trigger of' edge."""

    model_config = ConfigDict(frozen=True)

    source: tuple[int, int] = Field(..., description="Producing instantiation")
    target: tuple[int, int] = Field(..., description="Triggered instantiation")


class GraphSchema(BaseModel):
    """Schema for the instantiation graph."""

    model_config = ConfigDict(frozen=True)

    nodes: list[NodeSchema] = Field(default_factory=list)
    edges: list[EdgeSchema] = Field(default_factory=list)


class QuantifierCostSchema(BaseModel):
    """Schema for one line of the cost report."""

    model_config = ConfigDict(frozen=True)

    quantifier: str = Field(..., description="Quantifier name")
    instantiations: int = Field(0, description="Number of instantiations")
    cost: int = Field(0, description="Accumulated cost")
    score: int = Field(0, description="instantiations x cost, the ranking key")
    percentage: int = Field(
        0, description="Truncated share of all instantiations, in percent"
    )


class ProfileReportSchema(BaseModel):
    """Top-level profiler output."""

    model_config = ConfigDict(frozen=True)

    version: str = Field("1.0", description="Schema version")
    graph: GraphSchema = Field(default_factory=GraphSchema)
    quantifiers: list[QuantifierCostSchema] = Field(
        default_factory=list, description="Quantifiers, most expensive first"
    )
    total_instantiations: int = Field(0, description="Sum over all quantifiers")
