"""Knowledge graph and schema evaluation result shapes."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Triplet(BaseModel):
    """One (subject, predicate, object) fact."""

    model_config = ConfigDict(extra="forbid")

    subject: str = Field(description="The subject of the triplet.")
    predicate: str = Field(description="The predicate of the triplet.")
    object: str = Field(description="The object of the triplet.")


class KnowledgeGraph(BaseModel):
    """The knowledge graph representation of the given text."""

    model_config = ConfigDict(extra="forbid")

    triplets: list[Triplet] = Field(
        default_factory=list, description="The triplets of the graph."
    )

    def to_text(self) -> str:
        """Render the graph as one ``subject predicate object`` line per triplet."""

        lines = [f"{t.subject} {t.predicate} {t.object}" for t in self.triplets]
        return "Knowledge Graph representation:\n" + "\n".join(lines)


class SchemaEvaluation(BaseModel):
    """Whether a text fits a schema, with the model's markdown report."""

    fits: bool = False
    reason: str = ""
