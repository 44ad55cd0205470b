from pydantic import BaseModel, Field


class KnowledgeItem(BaseModel):
    id: str
    vector: list[float] = Field(repr=False)
    text: str
    category: str
    namespace: str


class KnowledgeMatch(BaseModel):
    id: str
    text: str
    category: str
    namespace: str
    score: float


class KnowledgeContext(BaseModel):
    biomarker_info: str
    nutrition_info: str
    source: str


class KnowledgeQuery(BaseModel):
    text: str
    namespace: str = "biomarkers"
    top_k: int = Field(default=3, ge=1, le=20)
