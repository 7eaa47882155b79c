"""
Interview practice workflow.

This module provides:
- Question supply (remote generation with a fallback bank)
- Answer evaluation (remote grading with a heuristic fallback)
- The session state machine and its event-driven actor
- Conversational practice mode
"""

from .models import (
    AggregateResult,
    CodeAnalysis,
    EvaluationResult,
    Question,
    QuestionKind,
    SessionConfig,
    VoiceAnalysis
)
from .recent_questions import RecentlyUsedSet
from .question_bank import QUESTION_BANK, FallbackQuestionBank
from .question_generator import QuestionGenerator
from .question_supply import QuestionSupply
from .heuristic_scorer import HeuristicScorer
from .answer_evaluator import AnswerEvaluator
from .session_machine import InterviewSession, SessionPhase
from .session_actor import SessionActor
from .session_manager import InterviewSessionManager, get_session_manager
from .practice import PracticeConversation

__all__ = [
    'AggregateResult',
    'CodeAnalysis',
    'EvaluationResult',
    'Question',
    'QuestionKind',
    'SessionConfig',
    'VoiceAnalysis',
    'RecentlyUsedSet',
    'QUESTION_BANK',
    'FallbackQuestionBank',
    'QuestionGenerator',
    'QuestionSupply',
    'HeuristicScorer',
    'AnswerEvaluator',
    'InterviewSession',
    'SessionPhase',
    'SessionActor',
    'InterviewSessionManager',
    'get_session_manager',
    'PracticeConversation'
]
