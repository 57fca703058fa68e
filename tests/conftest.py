"""
Pytest Configuration and Fixtures

Shared test fixtures for unit and integration tests.
"""

import os
from collections import defaultdict
from typing import Any

import pytest
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import configure_mappers
from sqlalchemy.pool import StaticPool

from behaviorplan.ai.prompt_loader import PromptLibrary
from behaviorplan.assessment.rubric import Rubric
from behaviorplan.config import settings
from behaviorplan.core.models import (  # noqa: F401 - imported for SQLAlchemy registration
    Base,
    Plan,
    PlanSectionRevision,
    Student,
)
from behaviorplan.core.schemas import (
    CoherenceOutput,
    GeneratedPlanOutput,
    SectionRevisionOutput,
)
from behaviorplan.plans.store import PlanStore

# Ensure all mappers are configured
configure_mappers()


# ============================================================================
# Database
# ============================================================================


@pytest.fixture
async def async_engine():
    """Create async engine for testing.

    Uses TEST_DATABASE_URL when set (e.g. PostgreSQL in CI), otherwise an
    in-memory SQLite database shared across the fixture's connections.
    """
    database_url = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

    if database_url.startswith("sqlite"):
        engine = create_async_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_async_engine(database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(async_engine) -> AsyncSession:
    """Create database session for testing."""
    session_factory = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session


@pytest.fixture
def store(db_session) -> PlanStore:
    return PlanStore(db_session)


# ============================================================================
# Reference data
# ============================================================================


@pytest.fixture
def rubric() -> Rubric:
    """The bundled 21-item function assessment rubric."""
    return Rubric.from_json(settings.rubric_path)


@pytest.fixture
def small_rubric() -> Rubric:
    """A tiny rubric with an item-less category, for edge cases."""
    return Rubric.from_dict(
        {
            "version": "test",
            "categories": [
                {"id": "escape", "label": "Escape"},
                {"id": "attention", "label": "Attention"},
                {"id": "empty", "label": "No Items"},
            ],
            "response_options": [
                {"value": "strongly_agree", "weight": 3},
                {"value": "agree", "weight": 2},
                {"value": "disagree", "weight": 1},
                {"value": "n_a", "weight": None},
            ],
            "items": [
                {"id": 1, "category": "escape", "text": "[Student] leaves when asked to work."},
                {"id": 2, "category": "escape", "text": "[Student] avoids [Student]'s tasks."},
                {"id": 3, "category": "attention", "text": "[Student] looks for a reaction."},
            ],
        }
    )


@pytest.fixture
def prompts() -> PromptLibrary:
    return PromptLibrary(settings.prompt_library_path)


@pytest.fixture
def all_agree(rubric) -> dict[int, str]:
    """Every rubric item answered "agree"."""
    return {item_id: "agree" for item_id in rubric.item_ids}


# ============================================================================
# Generation oracle
# ============================================================================

STRATEGIES = [
    "**Visual schedule**: Review the day's schedule with Maya each morning.",
    "**Task chunking**: Break worksheets into three short parts.",
    "**Choice making**: Offer two ways to complete each task.",
]

GENERATED_PLAN: dict[str, Any] = {
    "function_summary": "Maya leaves her seat to escape difficult writing tasks.",
    "replacement_behavior": "Maya asks for a break using a break card.",
    "replacement_behavior_rationale": "Functionally equivalent to escape.",
    "prevention_strategies": STRATEGIES,
    "prevention_strategies_rationale": "Antecedent modifications reduce task aversiveness.",
    "reinforcement_plan": "**Lego time**: Earn five minutes of Lego time for using the card.",
    "reinforcement_plan_rationale": "Differential reinforcement of the replacement behavior.",
    "response_to_behavior": "1. Calmly redirect.\n2. Prompt the break card.\n3. Resume the task.",
    "response_to_behavior_rationale": "Escape extinction with a functional alternative.",
}

ALL_COHERENT: dict[str, Any] = {
    "replacement_behavior": {"coherent": True},
    "prevention_strategies": {"coherent": True},
    "reinforcement_plan": {"coherent": True},
    "response_to_behavior": {"coherent": True},
}


class FakeOracle:
    """Deterministic stand-in for the generation oracle.

    Queued payloads are returned per schema in order; when the queue is
    empty a default payload is used. Queued exceptions are raised.
    """

    DEFAULTS: dict[type[BaseModel], dict[str, Any]] = {
        GeneratedPlanOutput: GENERATED_PLAN,
        SectionRevisionOutput: {"content": "Revised content", "rationale": "Revised rationale"},
        CoherenceOutput: ALL_COHERENT,
    }

    def __init__(self):
        self.calls: list[tuple[str, type[BaseModel]]] = []
        self._queued: dict[type[BaseModel], list[Any]] = defaultdict(list)

    def queue(self, schema: type[BaseModel], payload: Any) -> None:
        self._queued[schema].append(payload)

    def prompts_for(self, schema: type[BaseModel]) -> list[str]:
        return [prompt for prompt, called in self.calls if called is schema]

    async def generate(self, prompt: str, output_schema: type[BaseModel]) -> BaseModel:
        self.calls.append((prompt, output_schema))

        queued = self._queued[output_schema]
        payload = queued.pop(0) if queued else self.DEFAULTS[output_schema]

        if isinstance(payload, BaseException):
            raise payload

        return output_schema.model_validate(payload)


@pytest.fixture
def oracle() -> FakeOracle:
    return FakeOracle()


# ============================================================================
# Records
# ============================================================================


@pytest.fixture
async def student(store) -> Student:
    student = await store.add_student(
        Student(
            name="Maya",
            grade_level="3rd",
            about="Loves building things; struggles with writing.",
            interests="Legos, drawing",
        )
    )
    await store.commit()
    return student


@pytest.fixture
async def plan(store, student) -> Plan:
    """A plan with a completed assessment, ready to generate."""
    plan = await store.add_plan(
        Plan(
            student_id=student.id,
            status="assessment_complete",
            target_behavior="Leaves seat during writing tasks",
            behavior_frequency="Several times a day",
            behavior_intensity="Moderate",
            whats_been_tried="Verbal reminders",
            implementers=["classroom_teacher", "Other: Reading specialist"],
            function_scores={"escape": 2.8, "attention": 1.6, "access": 1.2, "sensory": None},
            calculated_function="escape",
            determined_function="escape",
        )
    )
    await store.commit()
    return plan
