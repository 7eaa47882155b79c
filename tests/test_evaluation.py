"""
Tests for answer evaluation.

Tests:
1. Heuristic scoring per question kind
2. Aggregate fallback result (the 2 of 3 correct scenario scores 67)
3. Remote grading reply is mapped per question
4. Incomplete or failed remote grading falls back to the heuristic scorer
"""
import json

import pytest

from mockprep.errors import GradingFailedError
from mockprep.interview import AnswerEvaluator, HeuristicScorer, Question
from mockprep.interview.heuristic_scorer import (
    focus_topics,
    has_balanced_delimiters,
    has_control_flow,
    required_keyword_matches
)

from conftest import FakeChain, OverloadedError


def voice_question(expected, qid="v-1"):
    return Question(
        id=qid, kind="voice", prompt="Explain it", expected_answer=expected,
        difficulty="medium", topic="JavaScript"
    )


class TestHeuristicRules:
    """Building blocks of the offline reviewer."""

    @pytest.mark.parametrize("keywords, needed", [(0, 0), (1, 1), (3, 2), (4, 2), (5, 2), (10, 3), (20, 6)])
    def test_required_keyword_matches(self, keywords, needed):
        assert required_keyword_matches(keywords) == needed

    def test_balanced_delimiters(self):
        assert has_balanced_delimiters("function f(a) { return [a]; }")
        assert not has_balanced_delimiters("function f(a) { return [a; }")
        assert not has_balanced_delimiters("}{")

    def test_control_flow(self):
        assert has_control_flow("const f = (a) => a * 2")
        assert has_control_flow("if(x) { y() }")
        assert has_control_flow("items.map(x)")
        assert not has_control_flow("let total = 3")


class TestHeuristicScorer:
    """Per-question verdicts and the aggregate result."""

    @pytest.fixture
    def scorer(self):
        return HeuristicScorer()

    def test_mcq_exact_match(self, scorer, scenario_questions):
        mcq = scenario_questions[0]

        right = scorer.score_question(mcq, mcq.expected_answer)
        wrong = scorer.score_question(mcq, "wrong one")
        blank = scorer.score_question(mcq, "")

        assert (right.is_correct, right.score, right.correct_answer) == (True, 100, None)
        assert (wrong.is_correct, wrong.score, wrong.feedback) == (False, 0, "Not quite.")
        assert wrong.correct_answer == mcq.expected_answer
        assert blank.feedback == "No answer provided."

    def test_mcq_match_is_case_sensitive(self, scorer, scenario_questions):
        mcq = scenario_questions[0]
        assert not scorer.score_question(mcq, mcq.expected_answer.upper()).is_correct

    def test_voice_answer_with_enough_keywords(self, scorer):
        question = voice_question("HTTP is a request response protocol between browsers and servers")

        result = scorer.score_question(question, "Browsers send a request and servers send a response")

        assert result.is_correct
        assert result.score == 100
        assert result.voice_analysis.content_match > 0

    def test_voice_answer_missing_keywords(self, scorer):
        question = voice_question("HTTP is a request response protocol between browsers and servers")

        result = scorer.score_question(question, "It is something about the internet")

        assert not result.is_correct
        assert result.score < 50
        assert "misses some key points" in result.feedback

    def test_blank_coding_answer(self, scorer, scenario_questions):
        result = scorer.score_question(scenario_questions[2], "   ")

        assert not result.is_correct
        assert result.score == 0
        assert result.code_analysis.syntax is False
        assert result.correct_answer == scenario_questions[2].expected_answer

    def test_plausible_coding_answer(self, scorer, scenario_questions):
        result = scorer.score_question(scenario_questions[2], "function sum(a, b) {\n  return a + b;\n}")

        assert result.is_correct
        assert result.code_analysis.syntax and result.code_analysis.logic

    def test_broken_coding_answer_gets_partial_score(self, scorer, scenario_questions):
        result = scorer.score_question(scenario_questions[2], "function sum(a, b) { return a + b;")

        assert not result.is_correct
        # logic and coverage present, brackets unbalanced: 2/3 of 50
        assert result.score == 33
        assert "unbalanced brackets" in result.feedback

    def test_two_of_three_correct_scores_67(self, scorer, scenario_questions):
        answers = {
            "q-1-1": scenario_questions[0].expected_answer,
            "q-1-2": scenario_questions[1].expected_answer,
        }

        result = scorer.evaluate(scenario_questions, answers)

        assert result.overall_score == 67
        assert result.correct_answers == 2
        assert result.total_questions == 3
        assert result.graded_by == "fallback"
        assert [r.question_id for r in result.results] == ["q-1-1", "q-1-2", "q-1-3"]
        assert result.results[2].user_answer == ""
        assert result.summary.startswith("Assessment completed with 2/3 correct answers (67%).")
        assert result.performance_message == "Good effort! Keep practicing."

    def test_evaluation_is_deterministic(self, scorer, scenario_questions):
        answers = {"q-1-1": "wrong one", "q-1-3": "for (const x of xs) { total += x }"}

        first = scorer.evaluate(scenario_questions, answers)
        second = scorer.evaluate(scenario_questions, answers)

        assert first == second

    def test_all_correct_uses_default_recommendations(self, scorer, scenario_questions):
        answers = {q.id: q.expected_answer for q in scenario_questions}

        result = scorer.evaluate(scenario_questions, answers)

        assert result.overall_score == 100
        assert result.focus_areas == ()
        assert len(result.recommended_topics) == 3
        assert result.category_scores == {"JavaScript": 100}

    def test_focus_topics_rank_by_misses(self, scorer):
        questions = [
            voice_question("closures scope", qid="a"),
            Question(id="b", kind="voice", prompt="p", expected_answer="hooks state", topic="React"),
            Question(id="c", kind="voice", prompt="p", expected_answer="hooks effects", topic="React"),
        ]
        results = [scorer.score_question(q, "") for q in questions]

        assert focus_topics(questions, results) == ("React", "JavaScript")


def grading_reply(per_question, score=80):
    return "```json\n" + json.dumps({
        "overallScore": score,
        "overallFeedback": "Solid fundamentals.",
        "perQuestion": per_question,
        "focusAreas": ["Closures"],
        "recommendedTopics": ["Study closures"],
    }) + "\n```"


class TestAnswerEvaluator:
    """Remote grading with fallback."""

    def make_evaluator(self, outputs, **kwargs):
        chain = FakeChain(outputs, "grading")
        return AnswerEvaluator(chain=chain, sleep=lambda _: None, **kwargs), chain

    def test_remote_grading_is_mapped(self, scenario_questions):
        evaluator, chain = self.make_evaluator([grading_reply([
            {"id": "q-1-1", "isCorrect": True, "score": 100, "feedback": "Right."},
            {"id": "q-1-2", "isCorrect": False, "feedback": "Review this."},
            {"id": "q-1-3", "isCorrect": True, "score": 90, "feedback": "Clean.",
             "codeAnalysis": {"syntax": True, "logic": True, "efficiency": "O(1)", "testCases": True}},
        ])])

        result = evaluator.evaluate(scenario_questions, {"q-1-1": "answer q-1-1"})

        assert result.graded_by == "remote"
        assert result.overall_score == 80
        assert result.summary == "Solid fundamentals."
        assert result.correct_answers == 2
        assert result.results[1].score == 0
        assert result.results[1].correct_answer == scenario_questions[1].expected_answer
        assert result.results[2].code_analysis.efficiency == "O(1)"
        assert result.focus_areas == ("Closures",)
        assert "User Answer: No answer provided" in chain.calls[0]["questions"]

    def test_missing_question_in_reply_falls_back(self, scenario_questions):
        evaluator, _ = self.make_evaluator([grading_reply([
            {"id": "q-1-1", "isCorrect": True},
        ])])

        result = evaluator.evaluate(scenario_questions, {})

        assert result.graded_by == "fallback"
        assert len(result.results) == 3

    def test_unparseable_reply_falls_back(self, scenario_questions):
        evaluator, _ = self.make_evaluator(["Great answers overall!"])

        result = evaluator.evaluate(scenario_questions, {})

        assert result.graded_by == "fallback"

    def test_overloaded_grader_is_retried(self, scenario_questions):
        evaluator, chain = self.make_evaluator([
            OverloadedError(),
            grading_reply([
                {"id": q.id, "isCorrect": False} for q in scenario_questions
            ], score=0),
        ])

        result = evaluator.evaluate(scenario_questions, {})

        assert len(chain.calls) == 2
        assert result.graded_by == "remote"

    def test_fallback_disabled_raises(self, scenario_questions):
        evaluator, _ = self.make_evaluator([ConnectionError("unreachable")], use_fallback=False)

        with pytest.raises(GradingFailedError):
            evaluator.evaluate(scenario_questions, {})

    def test_answers_are_not_modified(self, scenario_questions, down_evaluator):
        answers = {"q-1-1": "wrong one"}

        down_evaluator.evaluate(scenario_questions, answers)

        assert answers == {"q-1-1": "wrong one"}
