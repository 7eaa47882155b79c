"""
Conversational practice mode.

A scripted interviewer asks behavioural questions one at a time and
reacts to each answer with short feedback based on its length.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..errors import InputValidationError, InvalidTransitionError
from ..utils.config import (
    PRACTICE_MAX_QUESTIONS,
    PRACTICE_SHORT_ANSWER_CHARS,
    PRACTICE_DETAILED_ANSWER_CHARS
)
from ..utils.logger import setup_logger

logger = setup_logger("practice")

PRACTICE_QUESTIONS = [
    "Tell me about yourself and your background.",
    "Why are you interested in this position?",
    "What is your greatest strength?",
    "Describe a challenging situation you faced and how you handled it.",
    "Where do you see yourself in 5 years?",
    "What motivates you in your work?",
    "How do you handle working under pressure?",
    "What's your approach to learning new technologies?",
    "Tell me about a time you worked in a team.",
    "Do you have any questions for us?",
]

CLOSING_REMARKS = (
    "That concludes our interview practice session. You did well! Remember to practice "
    "articulating your thoughts clearly and providing specific examples. "
    "Good luck with your real interviews!"
)


def answer_feedback(answer: str) -> str:
    """Interviewer reaction to an answer, judged by its length."""
    feedback = "Thank you for your answer. "
    if len(answer) < PRACTICE_SHORT_ANSWER_CHARS:
        feedback += "Consider providing more detail in your responses."
    elif len(answer) > PRACTICE_DETAILED_ANSWER_CHARS:
        feedback += "Great detailed response!"
    else:
        feedback += "Good response."
    return feedback


@dataclass
class PracticeMessage:
    role: str  # "interviewer" or "candidate"
    content: str
    question_number: Optional[int] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role,
            "content": self.content,
            "question_number": self.question_number,
            "timestamp": self.timestamp.isoformat(),
        }


class PracticeConversation:
    """Turn-based practice interview with a scripted interviewer."""

    def __init__(
        self,
        questions: Optional[List[str]] = None,
        max_questions: int = PRACTICE_MAX_QUESTIONS
    ):
        self.conversation_id = str(uuid.uuid4())
        self.questions = list(questions or PRACTICE_QUESTIONS)
        self.max_questions = min(max_questions, len(self.questions))
        self.messages: List[PracticeMessage] = []
        self.question_count = 0
        self.finished = False

    @property
    def started(self) -> bool:
        return self.question_count > 0

    def start(self) -> PracticeMessage:
        if self.started:
            raise InvalidTransitionError("Practice interview already started")
        self.question_count = 1
        message = PracticeMessage(
            role="interviewer",
            content=f"Let's begin your interview practice. Here's your first question:\n\n{self.questions[0]}",
            question_number=1
        )
        self.messages.append(message)
        logger.info(f"Practice {self.conversation_id} started")
        return message

    def answer(self, text: str) -> PracticeMessage:
        """
        Record the candidate's answer and return the interviewer's reply.

        Raises:
            InputValidationError: Empty answer
            InvalidTransitionError: Not started or already finished
        """
        if not self.started or self.finished:
            raise InvalidTransitionError("No practice question is waiting for an answer")
        if not text or not text.strip():
            raise InputValidationError("Please provide an answer before submitting.")

        self.messages.append(PracticeMessage(role="candidate", content=text))
        feedback = answer_feedback(text)

        if self.question_count < self.max_questions:
            self.question_count += 1
            reply = PracticeMessage(
                role="interviewer",
                content=f"{feedback}\n\nNext question:\n\n{self.questions[self.question_count - 1]}",
                question_number=self.question_count
            )
        else:
            self.finished = True
            reply = PracticeMessage(role="interviewer", content=f"{feedback}\n\n{CLOSING_REMARKS}")
            logger.info(f"Practice {self.conversation_id} finished after {self.question_count} questions")

        self.messages.append(reply)
        return reply

    def reset(self) -> None:
        """Clear the transcript so the practice can start over."""
        self.messages = []
        self.question_count = 0
        self.finished = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "conversation_id": self.conversation_id,
            "question_count": self.question_count,
            "max_questions": self.max_questions,
            "finished": self.finished,
            "messages": [m.to_dict() for m in self.messages],
        }
