from collections.abc import Generator

import numpy as np
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from vitalsense.database import Base, get_db
from vitalsense.main import app
from vitalsense.routers.deps import get_embedding_provider
from vitalsense.seed.knowledge_seed import upsert_knowledge
from vitalsense.services.embeddings import FeatureHashEncoder


@pytest.fixture()
def db_session() -> Generator:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def encoder() -> FeatureHashEncoder:
    return FeatureHashEncoder(dimension=1536, rng=np.random.default_rng(7))


@pytest.fixture()
def seeded_knowledge(db_session, encoder):
    return upsert_knowledge(db_session, encoder, dimension=1536)


@pytest.fixture()
def client(db_session, encoder) -> Generator[TestClient, None, None]:
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_embedding_provider] = lambda: encoder

    # Tests use an in-memory DB via dependency override; skip migration check and seeding.
    original_startup = list(app.router.on_startup)
    app.router.on_startup.clear()
    with TestClient(app) as test_client:
        yield test_client
    app.router.on_startup[:] = original_startup
    app.dependency_overrides.clear()
