"""
Heuristic fallback scorer.

Used when remote grading fails or returns malformed data. This is an
approximation, not a grader:
- MCQ: exact string equality with the expected answer
- Voice / free-form: enough shared keywords with the reference answer
- Coding: balanced delimiters, a control-flow signal and some keyword overlap

Verdicts are deterministic for a given question set and answer map.
"""
import math
from collections import OrderedDict
from typing import Dict, List, Mapping, Sequence, Set, Tuple

from ..utils.config import (
    SHORT_REFERENCE_KEYWORDS,
    SHORT_REFERENCE_COVERAGE,
    LONG_REFERENCE_COVERAGE,
    CODE_KEYWORD_COVERAGE
)
from ..utils.logger import setup_logger
from ..utils.text_utils import extract_keywords, round_half_up
from .models import (
    AggregateResult,
    CodeAnalysis,
    EvaluationResult,
    Question,
    QuestionKind,
    VoiceAnalysis
)

logger = setup_logger("heuristic_scorer")

# Tokens that indicate the answer contains some actual logic
CONTROL_FLOW_KEYWORDS = frozenset({
    "if", "else", "for", "while", "return", "switch", "case",
    "function", "def", "map", "filter", "reduce", "foreach", "yield", "await"
})

_DELIMITERS = {")": "(", "]": "[", "}": "{"}

DEFAULT_RECOMMENDED_TOPICS = (
    "Review core concepts of the topics you missed",
    "Practice explaining answers out loud",
    "Write small code exercises daily",
)


def required_keyword_matches(reference_keywords: int) -> int:
    """
    Number of reference keywords an answer must share to count as correct.

    Short references need half their keywords, longer ones 30% (at least two).
    """
    if reference_keywords == 0:
        return 0
    if reference_keywords <= SHORT_REFERENCE_KEYWORDS:
        return math.ceil(reference_keywords * SHORT_REFERENCE_COVERAGE)
    return max(2, math.ceil(reference_keywords * LONG_REFERENCE_COVERAGE))


def has_balanced_delimiters(code: str) -> bool:
    """True when every (, [ and { is closed in order."""
    stack: List[str] = []
    for char in code:
        if char in "([{":
            stack.append(char)
        elif char in _DELIMITERS:
            if not stack or stack.pop() != _DELIMITERS[char]:
                return False
    return not stack


def has_control_flow(code: str) -> bool:
    """True when the code uses a branch, loop, return or function construct."""
    if "=>" in code:
        return True
    tokens = set(code.lower().replace("(", " ").replace(".", " ").split())
    return bool(tokens & CONTROL_FLOW_KEYWORDS)


def _coverage(answer: str, reference: str) -> Tuple[Set[str], Set[str]]:
    reference_keywords = extract_keywords(reference)
    return reference_keywords, reference_keywords & extract_keywords(answer)


def _verdicts_by_topic(questions: Sequence[Question], results: Sequence[EvaluationResult]) -> Dict[str, List[bool]]:
    per_topic: Dict[str, List[bool]] = OrderedDict()
    for question, result in zip(questions, results):
        per_topic.setdefault(question.topic, []).append(result.is_correct)
    return per_topic


def category_scores(questions: Sequence[Question], results: Sequence[EvaluationResult]) -> Dict[str, int]:
    """Percentage of correct answers per topic, in question order."""
    return {
        topic: round_half_up(sum(verdicts) / len(verdicts) * 100)
        for topic, verdicts in _verdicts_by_topic(questions, results).items()
    }


def focus_topics(
    questions: Sequence[Question],
    results: Sequence[EvaluationResult],
    limit: int = 3
) -> Tuple[str, ...]:
    """Topics with wrong answers, most misses first."""
    misses = {
        topic: verdicts.count(False)
        for topic, verdicts in _verdicts_by_topic(questions, results).items()
    }
    ranked = sorted(misses.items(), key=lambda item: (-item[1], item[0]))
    return tuple(topic for topic, count in ranked if count > 0)[:limit]


class HeuristicScorer:
    """Deterministic local grader producing the same result shape as remote grading."""

    def score_question(self, question: Question, answer: str) -> EvaluationResult:
        """Grade one answer according to the question kind."""
        if question.kind == QuestionKind.MCQ:
            return self._score_mcq(question, answer)
        if question.kind == QuestionKind.CODING:
            return self._score_coding(question, answer)
        return self._score_free_form(question, answer)

    def _score_mcq(self, question: Question, answer: str) -> EvaluationResult:
        is_correct = answer == question.expected_answer
        return EvaluationResult(
            question_id=question.id,
            user_answer=answer,
            is_correct=is_correct,
            score=100 if is_correct else 0,
            feedback="Correct!" if is_correct else (
                "Not quite." if answer else "No answer provided."
            ),
            correct_answer=None if is_correct else question.expected_answer
        )

    def _score_free_form(self, question: Question, answer: str) -> EvaluationResult:
        reference, shared = _coverage(answer, question.expected_answer)
        needed = required_keyword_matches(len(reference))
        if not answer.strip():
            is_correct = False
        else:
            is_correct = len(shared) >= needed

        content_match = round(len(shared) / len(reference), 2) if reference else (1.0 if is_correct else 0.0)
        if is_correct:
            feedback = "Your answer covers the key points."
        elif not answer.strip():
            feedback = "No answer provided."
        else:
            missing = sorted(reference - shared)[:5]
            feedback = f"Your answer misses some key points: {', '.join(missing)}."

        return EvaluationResult(
            question_id=question.id,
            user_answer=answer,
            is_correct=is_correct,
            score=100 if is_correct else round_half_up(content_match * 50),
            feedback=feedback,
            correct_answer=None if is_correct else question.expected_answer,
            voice_analysis=VoiceAnalysis(content_match=content_match)
        )

    def _score_coding(self, question: Question, answer: str) -> EvaluationResult:
        code = answer.strip()
        if not code:
            return EvaluationResult(
                question_id=question.id,
                user_answer=answer,
                is_correct=False,
                score=0,
                feedback="No code submitted.",
                correct_answer=question.expected_answer,
                code_analysis=CodeAnalysis(syntax=False, logic=False, efficiency="Not evaluated")
            )

        syntax = has_balanced_delimiters(code)
        logic = has_control_flow(code)
        reference, shared = _coverage(code, question.expected_answer)
        needed = max(1, math.ceil(len(reference) * CODE_KEYWORD_COVERAGE)) if reference else 0
        covers = len(shared) >= needed
        is_correct = syntax and logic and covers

        problems = []
        if not syntax:
            problems.append("unbalanced brackets")
        if not logic:
            problems.append("no control flow or return statement")
        if not covers:
            problems.append("little overlap with the expected solution")
        feedback = "Your solution looks structurally sound." if is_correct else (
            "Review your solution: " + ", ".join(problems) + "."
        )

        signals = sum([syntax, logic, covers])
        return EvaluationResult(
            question_id=question.id,
            user_answer=answer,
            is_correct=is_correct,
            score=100 if is_correct else round_half_up(signals / 3 * 50),
            feedback=feedback,
            correct_answer=None if is_correct else question.expected_answer,
            code_analysis=CodeAnalysis(
                syntax=syntax,
                logic=logic,
                efficiency="Not analyzed by the offline reviewer",
                test_cases=is_correct
            )
        )

    def evaluate(self, questions: Sequence[Question], answers: Mapping[str, str]) -> AggregateResult:
        """
        Grade a full question set.

        Args:
            questions: Session questions (not modified)
            answers: Answer map; missing answers are treated as ""

        Returns:
            AggregateResult with graded_by="fallback"
        """
        results = [self.score_question(q, answers.get(q.id) or "") for q in questions]
        total = len(results)
        correct = sum(1 for r in results if r.is_correct)
        overall = round_half_up(correct / total * 100) if total else 0
        focus_areas = focus_topics(questions, results)
        recommended = tuple(f"Study {topic} fundamentals" for topic in focus_areas) or DEFAULT_RECOMMENDED_TOPICS

        logger.info(f"Fallback grading: {correct}/{total} correct ({overall}%)")
        return AggregateResult(
            overall_score=overall,
            summary=(
                f"Assessment completed with {correct}/{total} correct answers ({overall}%). "
                "Detailed AI feedback was unavailable, so answers were reviewed offline."
            ),
            results=tuple(results),
            focus_areas=focus_areas,
            recommended_topics=recommended,
            correct_answers=correct,
            total_questions=total,
            category_scores=category_scores(questions, results),
            graded_by="fallback"
        )
