"""Rich document node models for the ticketing comment API."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class Mark(BaseModel):
    """Inline formatting applied to a text run."""

    type: Literal["strong"] = "strong"


class TextRun(BaseModel):
    """Run of text, optionally bold."""

    type: Literal["text"] = "text"
    text: str
    marks: Optional[List[Mark]] = None

    @property
    def is_strong(self) -> bool:
        return any(mark.type == "strong" for mark in self.marks or [])


class Paragraph(BaseModel):
    """Paragraph node holding text runs in document order."""

    type: Literal["paragraph"] = "paragraph"
    content: List[TextRun] = Field(default_factory=list)


class RichDocument(BaseModel):
    """Root document node."""

    type: Literal["doc"] = "doc"
    version: int = 1
    content: List[Paragraph] = Field(default_factory=list)

    def to_wire(self) -> Dict[str, Any]:
        """Serialize to the JSON body expected by the comment endpoint."""
        return self.model_dump(exclude_none=True)
