from pydantic import BaseModel, field_validator
from typing import Optional, Literal

PersonType = Literal["PERSON", "PROPHET", "MESSENGER", "MESSENGER_PROPHET"]
ModerationStatus = Literal["PENDING_REVIEW", "APPROVED", "REJECTED"]


class PersonCreate(BaseModel):
    id: Optional[str] = None
    slug: str
    name: str
    type: PersonType = "PERSON"
    gender: Optional[str] = None
    kunya: Optional[str] = None
    laqab: Optional[str] = None
    birth_year: Optional[int] = None
    death_year: Optional[int] = None
    father_id: Optional[str] = None
    mother_id: Optional[str] = None
    variant_group: Optional[str] = None
    narration: Optional[str] = None
    is_canonical: bool = True
    biography_md: Optional[str] = None
    status: ModerationStatus = "PENDING_REVIEW"

    @field_validator("slug", "name")
    @classmethod
    def not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("death_year")
    @classmethod
    def death_after_birth(cls, v, info):
        birth = info.data.get("birth_year")
        if v is not None and birth is not None and v < birth:
            raise ValueError("death_year cannot precede birth_year")
        return v


class PersonSummary(BaseModel):
    id: str
    slug: str
    name: str
    type: str


class PersonRef(BaseModel):
    id: str
    name: str
    slug: str


class VariantOut(BaseModel):
    slug: str
    name: str
    narration: Optional[str] = None
    is_canonical: bool


class SourceOut(BaseModel):
    id: str
    title: str
    author: Optional[str] = None
    url: Optional[str] = None
    citation: Optional[str] = None
    note: Optional[str] = None
    page_ref: Optional[str] = None


class PersonDetail(BaseModel):
    id: str
    slug: str
    name: str
    type: str
    gender: Optional[str] = None
    kunya: Optional[str] = None
    laqab: Optional[str] = None
    birth_year: Optional[int] = None
    death_year: Optional[int] = None
    narration: Optional[str] = None
    biography_md: Optional[str] = None
    father: Optional[PersonRef] = None
    mother: Optional[PersonRef] = None
    variants: list[VariantOut] = []
    sources: list[SourceOut] = []


class BulkCreateOut(BaseModel):
    message: str
    count: int


class GraphNode(BaseModel):
    id: str
    label: str
    slug: str
    gender: Optional[str] = None
    type: PersonType


class GraphEdge(BaseModel):
    id: str
    source: str
    target: str
    kind: str


class GraphRoot(BaseModel):
    requested: Optional[str] = None
    id: Optional[str] = None
    matched: bool = False


class GraphOut(BaseModel):
    nodes: list[GraphNode]
    edges: list[GraphEdge]
    root: GraphRoot
