from fastapi import APIRouter, Depends

from vitalsense.routers.deps import get_embedding_provider, get_knowledge_retriever
from vitalsense.schemas.knowledge import KnowledgeMatch, KnowledgeQuery
from vitalsense.services.embeddings import EmbeddingProvider
from vitalsense.services.knowledge import KnowledgeRetriever

router = APIRouter(prefix="/api/knowledge", tags=["knowledge"])


@router.post("/query", response_model=list[KnowledgeMatch])
def query_knowledge(
    payload: KnowledgeQuery,
    provider: EmbeddingProvider = Depends(get_embedding_provider),
    retriever: KnowledgeRetriever = Depends(get_knowledge_retriever),
):
    vector = provider.embed(payload.text)
    return [
        KnowledgeMatch(
            id=item.id,
            text=item.text,
            category=item.category,
            namespace=item.namespace,
            score=round(score, 6),
        )
        for item, score in retriever.query_with_scores(payload.namespace, vector, payload.top_k)
    ]
