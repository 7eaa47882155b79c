"""
Shared fixtures: fake LLM chains and small question sets.
"""
import json
import random

import pytest

from mockprep.interview import (
    AnswerEvaluator,
    FallbackQuestionBank,
    Question,
    QuestionGenerator,
    QuestionSupply,
    RecentlyUsedSet,
    SessionConfig
)


class FakeChain:
    """
    Stand-in for an LLMChain.

    Each invoke() returns the next scripted output under output_key, or
    raises it when the scripted output is an exception.
    """

    def __init__(self, outputs, output_key):
        self.outputs = list(outputs)
        self.output_key = output_key
        self.calls = []

    def invoke(self, inputs):
        self.calls.append(inputs)
        output = self.outputs.pop(0) if len(self.outputs) > 1 else self.outputs[0]
        if isinstance(output, Exception):
            raise output
        return {self.output_key: output}


class OverloadedError(Exception):
    """Remote error carrying a 503 status, like the HTTP client errors do."""

    status_code = 503

    def __init__(self, message="Service Unavailable: model is overloaded"):
        super().__init__(message)


def remote_question(qid, kind, **overrides):
    """Question dict in the camelCase shape the generator replies with."""
    item = {
        "id": qid,
        "type": kind,
        "question": f"Question {qid}?",
        "correctAnswer": f"answer {qid}",
        "category": "JavaScript",
        "difficulty": "easy",
    }
    if kind == "mcq":
        item["options"] = [f"answer {qid}", "wrong one", "wrong two", "wrong three"]
    if kind == "coding":
        item["correctAnswer"] = "function sum(a, b) { return a + b; }"
        item["codeTemplate"] = "function sum(a, b) {\n  // Your code here\n}"
    item.update(overrides)
    return item


def generator_reply(items, prose=True):
    """LLM-style text wrapping a JSON array."""
    body = json.dumps(items, indent=2)
    return f"Here are your questions:\n```json\n{body}\n```" if prose else body


@pytest.fixture
def no_sleep():
    delays = []
    return delays.append, delays


@pytest.fixture
def scenario_config():
    return SessionConfig(topic="JavaScript", difficulty="easy", mcq_count=2, coding_count=1, voice_count=0)


@pytest.fixture
def scenario_items():
    return [
        remote_question("q-1-1", "mcq"),
        remote_question("q-1-2", "mcq"),
        remote_question("q-1-3", "coding"),
    ]


@pytest.fixture
def scenario_questions(scenario_items):
    return [Question.model_validate(item) for item in scenario_items]


@pytest.fixture
def make_generator():
    def _make(outputs):
        chain = FakeChain(outputs, "questions")
        return QuestionGenerator(chain=chain, id_prefix_factory=lambda: "q-1"), chain
    return _make


@pytest.fixture
def make_supply(no_sleep):
    sleep, _ = no_sleep

    def _make(generator=None, used_ids=None, use_fallback=True, seed=7):
        return QuestionSupply(
            generator=generator,
            bank=FallbackQuestionBank(rng=random.Random(seed)),
            used_ids=used_ids if used_ids is not None else RecentlyUsedSet(),
            use_fallback=use_fallback,
            sleep=sleep,
            rng=random.Random(seed)
        )
    return _make


@pytest.fixture
def down_evaluator():
    """Evaluator whose remote grader is always unavailable."""
    chain = FakeChain([ConnectionError("grading endpoint unreachable")], "grading")
    return AnswerEvaluator(chain=chain, sleep=lambda _: None)
