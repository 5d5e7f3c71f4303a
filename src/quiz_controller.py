"""
Quiz session controller for the parts quiz runner.
Drives question-by-question progression and manages per-channel sessions.
"""
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Set

from .config_manager import ConfigManager
from .data_manager import DataManager
from .models import Question, Response, Score
from .quiz_engine import PartSelection, QuizEngine, estimated_count
from .scorer import score


class SessionState(Enum):
    """Enumeration of possible quiz session states."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class QuizControllerError(Exception):
    """Base exception for quiz controller errors."""
    pass


class SessionNotFoundError(QuizControllerError):
    """Raised when attempting to operate on a non-existent session."""
    pass


class InvalidSessionStateError(QuizControllerError):
    """Raised when session is in an invalid state for the requested operation."""
    pass


class OutOfRangeError(QuizControllerError, IndexError):
    """Raised when the session index points past the last question."""
    pass


class QuizSession:
    """
    State machine for one run through a list of questions.

    NOT_STARTED -> IN_PROGRESS -> COMPLETED. Each question is answered once
    and then advanced past; options are shown in a per-question shuffled
    order that is independent of the question order.
    """

    def __init__(self, engine: Optional[QuizEngine] = None):
        self.engine = engine or QuizEngine()
        self.state = SessionState.NOT_STARTED
        self.questions: List[Question] = []
        self.index = 0
        self.responses: List[Response] = []
        self.start_time: Optional[datetime] = None
        self._presented: Dict[int, List[str]] = {}

    def start(self, questions: Sequence[Question]) -> SessionState:
        """
        Begin (or restart) the session with a fixed list of questions.

        An empty list completes the session immediately.
        """
        self.questions = list(questions)
        self.index = 0
        self.responses = []
        self._presented = {}
        self.start_time = datetime.now()
        self.state = SessionState.IN_PROGRESS if self.questions else SessionState.COMPLETED
        return self.state

    def _require_in_progress(self, operation: str) -> None:
        if self.state is not SessionState.IN_PROGRESS:
            raise InvalidSessionStateError(
                f"Cannot {operation} while session is {self.state.value}"
            )

    @property
    def is_current_answered(self) -> bool:
        return len(self.responses) > self.index

    def current_question(self) -> Question:
        if self.index >= len(self.questions):
            raise OutOfRangeError(
                f"Question index {self.index} is out of range for {len(self.questions)} questions"
            )
        return self.questions[self.index]

    def presented_options(self) -> List[str]:
        """The current question's options in the order they are shown."""
        question = self.current_question()
        if self.index not in self._presented:
            self._presented[self.index] = self.engine.shuffle(question.options)
        return list(self._presented[self.index])

    def answer(self, selected: str) -> bool:
        """
        Record the answer to the current question.

        Returns:
            True if the selected option is the correct one
        """
        self._require_in_progress("answer")
        question = self.current_question()
        if self.is_current_answered:
            raise InvalidSessionStateError(f"Question {self.index + 1} has already been answered")

        self.responses.append(Response(selected=selected, correct=question.correct_option))
        return selected == question.correct_option

    def advance(self) -> SessionState:
        """Move past the answered current question."""
        self._require_in_progress("advance")
        if not self.is_current_answered:
            raise InvalidSessionStateError(f"Question {self.index + 1} has not been answered yet")

        self.index += 1
        if self.index == len(self.questions):
            self.state = SessionState.COMPLETED
        return self.state

    def score(self) -> Score:
        return score(self.responses)


class QuizController:
    """
    Orchestrates part selection and quiz sessions per channel.

    Each channel has its own PartSelection and at most one QuizSession.
    """

    def __init__(self, data_manager: DataManager, config_manager: ConfigManager, engine: Optional[QuizEngine] = None):
        """
        Initialize the quiz controller.

        Args:
            data_manager: Instance for assembling question pools
            config_manager: Instance for managing configuration
            engine: Selection engine, shared by all sessions
        """
        self.logger = logging.getLogger(__name__)
        self.data_manager = data_manager
        self.config_manager = config_manager
        self.quiz_engine = engine or QuizEngine()
        self._selections: Dict[int, PartSelection] = {}
        self._sessions: Dict[int, QuizSession] = {}
        # Channels whose pool is still loading
        self._starting: Set[int] = set()

    def get_selection(self, channel_id: int) -> PartSelection:
        selection = self._selections.get(channel_id)
        if selection is None:
            selection = self.config_manager.create_part_selection()
            self._selections[channel_id] = selection
        return selection

    def get_session(self, channel_id: int) -> Optional[QuizSession]:
        return self._sessions.get(channel_id)

    def _require_session(self, channel_id: int) -> QuizSession:
        session = self._sessions.get(channel_id)
        if session is None:
            raise SessionNotFoundError(f"No quiz session in channel {channel_id}")
        return session

    def is_starting(self, channel_id: int) -> bool:
        return channel_id in self._starting

    def has_active_session(self, channel_id: int) -> bool:
        session = self._sessions.get(channel_id)
        return session is not None and session.state is SessionState.IN_PROGRESS

    def get_session_state(self, channel_id: int) -> SessionState:
        session = self._sessions.get(channel_id)
        return session.state if session is not None else SessionState.NOT_STARTED

    def get_estimated_count(self, channel_id: int) -> int:
        """
        Estimate the session size for the channel's current selection.

        Counts come from configuration, falling back to the last load of each part.
        """
        selection = self.get_selection(channel_id)
        configured = self.config_manager.get_part_question_counts()
        counts = {}
        for part in selection.parts:
            count = configured.get(part)
            if count is None:
                count = self.data_manager.get_part_count(part) or 0
            counts[part] = count
        return estimated_count(counts, selection.limit_selector.limit, selection.is_multi_part)

    async def start_quiz(self, channel_id: int, part_ids: Optional[Sequence[str]] = None) -> Dict[str, Any]:
        """
        Assemble the pool, select questions and start a session.

        Args:
            channel_id: Channel identifier
            part_ids: Parts to use; the channel's selection when omitted

        Returns:
            Dictionary with success status, session info and user-friendly message
        """
        selection = self.get_selection(channel_id)
        if part_ids is None:
            parts = selection.parts
            limit = selection.limit_selector.limit
        else:
            parts = list(dict.fromkeys(part_ids))
            limit = selection.limit_selector.limit if len(parts) > 1 else None

        if not parts:
            return {
                'success': False,
                'error': "No parts selected",
                'user_message': "❌ Select at least one part before starting"
            }

        if channel_id in self._starting:
            return {
                'success': False,
                'error': "Quiz already starting",
                'user_message': "⏳ A quiz is already being started in this channel"
            }

        self._starting.add(channel_id)
        try:
            loaded = await self.data_manager.load_pool(parts)
        finally:
            self._starting.discard(channel_id)

        pool = loaded.questions
        multi_part = len(parts) > 1
        questions = self.quiz_engine.select_questions(pool, limit, multi_part)

        session = QuizSession(self.quiz_engine)
        session.start(questions)
        self._sessions[channel_id] = session

        load_errors = dict(loaded.errors)
        self.logger.info(
            f"Started quiz in channel {channel_id}: parts={parts}, pool={len(pool)}, "
            f"questions={len(questions)}, limit={limit if multi_part else None}"
        )

        if session.state is SessionState.COMPLETED:
            user_message = "⚠️ No questions could be loaded for the selected parts"
        else:
            user_message = f"✅ Quiz started with {len(questions)} questions"

        return {
            'success': True,
            'session_info': self.get_session_progress(channel_id),
            'load_errors': load_errors,
            'user_message': user_message
        }

    def get_current_question(self, channel_id: int) -> Optional[Question]:
        """
        Get the current question for an in-progress session.

        Returns:
            Current Question, or None if there is no session in progress
        """
        session = self._sessions.get(channel_id)
        if session is None or session.state is not SessionState.IN_PROGRESS:
            return None
        return session.current_question()

    def get_presented_options(self, channel_id: int) -> List[str]:
        session = self._require_session(channel_id)
        return session.presented_options()

    def submit_answer(self, channel_id: int, selected: str) -> bool:
        """
        Record an answer for the channel's current question.

        Returns:
            True if the answer was correct

        Raises:
            SessionNotFoundError: If the channel has no session
            InvalidSessionStateError: If the session cannot take an answer
        """
        session = self._require_session(channel_id)
        is_correct = session.answer(selected)
        self.logger.debug(
            f"Channel {channel_id} answered question {session.index + 1}: "
            f"{'correct' if is_correct else 'incorrect'}"
        )
        return is_correct

    def advance_question(self, channel_id: int) -> bool:
        """
        Advance to the next question in the session.

        Returns:
            True if there is another question, False if the quiz is complete
        """
        session = self._require_session(channel_id)
        state = session.advance()

        if state is SessionState.COMPLETED:
            self.logger.info(f"Quiz completed for channel {channel_id}")
            return False

        self.logger.debug(f"Advanced to question {session.index + 1} for channel {channel_id}")
        return True

    def is_quiz_complete(self, channel_id: int) -> bool:
        return self.get_session_state(channel_id) is SessionState.COMPLETED

    def get_score(self, channel_id: int) -> Score:
        return self._require_session(channel_id).score()

    def get_session_progress(self, channel_id: int) -> Optional[Dict[str, Any]]:
        """
        Get progress information for a session.

        Returns:
            Dictionary with progress info, None if no session
        """
        session = self._sessions.get(channel_id)

        if session is None:
            return None

        return {
            'state': session.state.value,
            'current_question': min(session.index + 1, len(session.questions)),
            'total_questions': len(session.questions),
            'answered': len(session.responses),
            'parts': sorted({q.source_part for q in session.questions}),
            'start_time': session.start_time,
        }

    def restart(self, channel_id: int) -> None:
        """Discard the channel's session and reset its part selection."""
        self._sessions.pop(channel_id, None)
        self.get_selection(channel_id).clear()
        self.logger.info(f"Channel {channel_id} returned to part selection")
