from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from vitalsense.config import settings
from vitalsense.database import get_db
from vitalsense.services.embeddings import EmbeddingProvider, build_embedding_provider
from vitalsense.services.knowledge import KnowledgeRetriever, SqlKnowledgeStore


def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()


def get_embedding_provider() -> EmbeddingProvider:
    return build_embedding_provider(settings)


def get_knowledge_retriever(db: Session = Depends(get_db)) -> KnowledgeRetriever:
    return KnowledgeRetriever(SqlKnowledgeStore(db), dimension=settings.embedding_dimension)
