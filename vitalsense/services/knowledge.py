"""Knowledge snippet retrieval by cosine similarity within a namespace."""

import json
import logging
from typing import Protocol

import numpy as np
from sqlalchemy.orm import Session

from vitalsense.config import ConfigurationError, settings
from vitalsense.models.knowledge import KnowledgeItemRecord
from vitalsense.schemas.knowledge import KnowledgeContext, KnowledgeItem
from vitalsense.services.embeddings import EmbeddingProvider, check_dimension

logger = logging.getLogger(__name__)

BIOMARKERS_NAMESPACE = "biomarkers"
NUTRITION_NAMESPACE = "nutrition_guidelines"
NAMESPACES = (BIOMARKERS_NAMESPACE, NUTRITION_NAMESPACE)

SAMPLE_CONTEXT: dict[str, dict[str, str]] = {
    "hba1c": {
        "biomarker_info": "HbA1c (Hemoglobin A1c) measures average blood sugar over 2-3 months. "
        "Normal range is 4.0-5.6%. Higher values indicate diabetes risk.",
        "nutrition_info": "For high HbA1c: Reduce refined carbs, increase fiber, choose low-glycemic foods. "
        "Include whole grains, vegetables, lean proteins.",
    },
    "hdl": {
        "biomarker_info": 'HDL (High-Density Lipoprotein) is "good cholesterol" that helps remove LDL. '
        "Higher values (above 40 mg/dL for men, 50 for women) are better.",
        "nutrition_info": "To raise HDL: Include healthy fats (olive oil, avocados, nuts), omega-3 fatty acids, "
        "regular exercise, moderate alcohol (if appropriate).",
    },
    "ldl": {
        "biomarker_info": 'LDL (Low-Density Lipoprotein) is "bad cholesterol" that can build up in arteries. '
        "Optimal is below 100 mg/dL.",
        "nutrition_info": "To lower LDL: Reduce saturated and trans fats, increase soluble fiber (oats, beans), "
        "include plant sterols, limit processed foods.",
    },
    "glucose": {
        "biomarker_info": "Glucose measures blood sugar at the time of test. Normal fasting is 70-100 mg/dL. "
        "High values indicate diabetes risk.",
        "nutrition_info": "For high glucose: Eat balanced meals, avoid sugary drinks, include protein with carbs, "
        "maintain regular meal timing.",
    },
    "creatinine": {
        "biomarker_info": "Creatinine measures kidney function. Normal range varies by age/gender. "
        "High values may indicate kidney issues.",
        "nutrition_info": "For high creatinine: Stay hydrated, reduce protein if advised, limit sodium, "
        "avoid nephrotoxic substances, consult nephrologist.",
    },
}


class KnowledgeStore(Protocol):
    def items(self, namespace: str) -> list[KnowledgeItem]: ...


class InMemoryKnowledgeStore:
    def __init__(self, dimension: int | None = None):
        self.dimension = dimension or settings.embedding_dimension
        self._namespaces: dict[str, list[KnowledgeItem]] = {}
        self._owner: dict[str, str] = {}

    def add(self, item: KnowledgeItem) -> None:
        if item.namespace not in NAMESPACES:
            raise ConfigurationError(f"Unknown knowledge namespace: {item.namespace}")
        check_dimension(item.vector, self.dimension, source=f"knowledge item {item.id}")
        owner = self._owner.get(item.id)
        if owner is not None and owner != item.namespace:
            raise ValueError(f"Knowledge item {item.id} already belongs to namespace {owner}")

        bucket = self._namespaces.setdefault(item.namespace, [])
        for i, existing in enumerate(bucket):
            if existing.id == item.id:
                bucket[i] = item
                break
        else:
            bucket.append(item)
        self._owner[item.id] = item.namespace

    def items(self, namespace: str) -> list[KnowledgeItem]:
        return list(self._namespaces.get(namespace, []))


class SqlKnowledgeStore:
    def __init__(self, db: Session):
        self.db = db

    def items(self, namespace: str) -> list[KnowledgeItem]:
        rows = (
            self.db.query(KnowledgeItemRecord)
            .filter(KnowledgeItemRecord.namespace == namespace)
            .order_by(KnowledgeItemRecord.seq.asc())
            .all()
        )
        return [
            KnowledgeItem(
                id=row.item_id,
                vector=json.loads(row.vector),
                text=row.text,
                category=row.category,
                namespace=row.namespace,
            )
            for row in rows
        ]


class KnowledgeRetriever:
    """Top-k cosine search over one namespace of a read-only store."""

    def __init__(self, store: KnowledgeStore, dimension: int | None = None):
        self.store = store
        self.dimension = dimension or settings.embedding_dimension

    def query_with_scores(self, namespace: str, vector: list[float], top_k: int) -> list[tuple[KnowledgeItem, float]]:
        check_dimension(vector, self.dimension, source="query vector")
        if top_k <= 0:
            return []
        items = self.store.items(namespace)
        if not items:
            return []

        for item in items:
            check_dimension(item.vector, self.dimension, source=f"knowledge item {item.id}")
        matrix = np.asarray([item.vector for item in items], dtype=np.float64)
        query = np.asarray(vector, dtype=np.float64)

        denominators = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        dots = matrix @ query
        scores = np.divide(dots, denominators, out=np.zeros_like(dots), where=denominators > 0)

        # stable sort keeps insertion order among equal scores
        order = np.argsort(-scores, kind="stable")[:top_k]
        return [(items[i], float(scores[i])) for i in order]

    def query(self, namespace: str, vector: list[float], top_k: int) -> list[KnowledgeItem]:
        return [item for item, _ in self.query_with_scores(namespace, vector, top_k)]


def _joined_text(items: list[KnowledgeItem]) -> str:
    return " ".join(item.text for item in items if item.text)


def sample_context(name: str) -> KnowledgeContext:
    key = "".join(name.lower().split())
    sample = SAMPLE_CONTEXT.get(key)
    if sample:
        return KnowledgeContext(source="sample", **sample)
    return KnowledgeContext(
        biomarker_info=f"{name} is a biomarker that should be interpreted by a healthcare professional.",
        nutrition_info=f"General healthy eating and lifestyle modifications may help optimize {name} levels.",
        source="generic",
    )


def retrieve_context(
    name: str,
    encoder: EmbeddingProvider,
    retriever: KnowledgeRetriever,
    biomarker_top_k: int | None = None,
    nutrition_top_k: int | None = None,
) -> KnowledgeContext:
    """Gather definition and nutrition snippets for a biomarker name."""
    biomarker_top_k = settings.knowledge_biomarker_top_k if biomarker_top_k is None else biomarker_top_k
    nutrition_top_k = settings.knowledge_nutrition_top_k if nutrition_top_k is None else nutrition_top_k

    vector = encoder.embed(name.lower())
    biomarker_info = _joined_text(retriever.query(BIOMARKERS_NAMESPACE, vector, biomarker_top_k))
    nutrition_info = _joined_text(retriever.query(NUTRITION_NAMESPACE, vector, nutrition_top_k))

    if not biomarker_info and not nutrition_info:
        logger.info("No knowledge retrieved for %s, using sample context", name)
        return sample_context(name)

    return KnowledgeContext(
        biomarker_info=biomarker_info or f"Information about {name}",
        nutrition_info=nutrition_info or f"General nutrition guidelines for {name}",
        source="retrieval",
    )
