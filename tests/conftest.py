"""
Shared fixtures: fake clock, scripted content providers, test configuration.

Async code under test is driven with ``asyncio.run`` inside plain test
functions; the fake clock's ``sleep`` advances time instead of waiting.
"""

import json
from typing import Callable, List, Optional, Union

import pytest

from clinical_document_processing.core.config import OrchestratorConfiguration
from clinical_document_processing.core.enums import ProviderRole
from clinical_document_processing.pipeline import HybridOrchestrator

Response = Union[str, Exception, Callable[[str], str]]


class FakeClock:
    """Monotonic clock whose ``sleep`` advances time and records the delay."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeProvider:
    """
    Scripted content provider.

    Each call consumes the next queued response; once the queue is empty the
    default response is used. A response may be a string, an exception to
    raise, or a callable receiving the prompt.
    """

    def __init__(
        self,
        role: ProviderRole,
        responses: Optional[List[Response]] = None,
        default: Response = "{}",
        name: Optional[str] = None,
    ):
        self._role = role
        self._responses = list(responses or [])
        self._default = default
        self._name = name or role.value
        self.prompts: List[str] = []

    async def generate_content(self, prompt: str) -> str:
        self.prompts.append(prompt)
        response = self._responses.pop(0) if self._responses else self._default
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(prompt)
        return response

    @property
    def calls(self) -> int:
        return len(self.prompts)

    @property
    def provider_name(self) -> str:
        return self._name

    @property
    def model_name(self) -> str:
        return f"fake-{self._name}"

    @property
    def role(self) -> ProviderRole:
        return self._role


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> OrchestratorConfiguration:
    return OrchestratorConfiguration()


@pytest.fixture
def high_fidelity() -> FakeProvider:
    return FakeProvider(ProviderRole.HIGH_FIDELITY, name="openai")


@pytest.fixture
def high_throughput() -> FakeProvider:
    return FakeProvider(ProviderRole.HIGH_THROUGHPUT, name="gemini")


@pytest.fixture
def orchestrator(config, high_fidelity, high_throughput) -> HybridOrchestrator:
    return HybridOrchestrator(config, high_fidelity=high_fidelity, high_throughput=high_throughput)


@pytest.fixture
def base_protocol_json() -> str:
    """High-throughput whole-document answer for a diabetes protocol."""
    return json.dumps(
        {
            "studyTitle": "A Phase 3 Study of Glucoretin in Type 2 Diabetes",
            "protocolNumber": "GLY-301",
            "studyPhase": "Phase 3",
            "investigationalDrug": "Glucoretin",
            "sponsor": "Acme Therapeutics",
            "indication": "Type 2 diabetes mellitus",
            "studyDesign": {"type": "Randomized, double-blind", "numberOfArms": 2},
            "endpoints": {"primary": ["HbA1c change"]},
            "inclusionCriteria": ["Adults 18-75 years"],
            "exclusionCriteria": ["Type 1 diabetes"],
            "safetyAssessments": ["Vital signs"],
        }
    )


def _section(title: str, line: str, lines: int) -> str:
    return title + "\n" + "\n".join(f"{line} ({i})" for i in range(lines)) + "\n"


@pytest.fixture
def protocol_text_factory() -> Callable[[int], str]:
    """
    Build a protocol of at least ``target_chars`` characters.

    Critical sections stay short; bulk comes from procedures and statistics.
    Filler lines start with words that match no section header pattern.
    """

    def build(target_chars: int) -> str:
        head = (
            "GLY-301 Clinical Study Protocol\n\n"
            + _section("PROTOCOL SYNOPSIS", "Glucoretin once daily versus placebo", 5)
            + _section("STUDY OBJECTIVES", "To evaluate glycaemic control over 24 weeks", 3)
            + _section("PRIMARY ENDPOINTS", "Change in HbA1c from baseline to week 24", 2)
            + _section("SECONDARY ENDPOINTS", "Change in fasting plasma glucose at week 24", 2)
            + _section("INCLUSION CRITERIA", "Adults aged 18 to 75 with type 2 diabetes", 3)
            + _section("EXCLUSION CRITERIA", "History of diabetic ketoacidosis", 3)
            + _section("SAFETY MONITORING", "Hypoglycaemia events are recorded at every visit", 3)
        )
        filler_line = "Participants attend the clinic and the site records the visit in the EDC"
        bulk_lines = 0
        size = len(head)
        while size < target_chars:
            size += len(filler_line) + 5
            bulk_lines += 1
        half = bulk_lines // 2
        return (
            head
            + _section("STUDY PROCEDURES", filler_line, half)
            + _section("STATISTICAL ANALYSIS", filler_line, bulk_lines - half)
        )

    return build
