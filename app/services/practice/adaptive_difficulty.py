# ============================================================================
# Adaptive Difficulty Stepper
# ============================================================================
from typing import List, Optional, Sequence
from uuid import UUID
import logging
import random

from app.models.curriculum import Question

logger = logging.getLogger(__name__)


class DifficultyStepper:
    """Picks the next question within a topic from the last answer's outcome"""

    def __init__(self, question_bank: Sequence[Question], rng: Optional[random.Random] = None):
        self.question_bank = list(question_bank)
        self.rng = rng or random.Random()

    def next_question(
        self,
        current: Question,
        was_correct: bool,
        student_id: Optional[UUID] = None
    ) -> Optional[Question]:
        candidates = [
            q for q in self.question_bank
            if q.topic == current.topic and q.id != current.id
        ]
        if not candidates:
            logger.debug(f"No other questions in topic {current.topic} for {student_id}")
            return None

        rating = current.grade_rating or 0

        if was_correct:
            harder = self._rated(candidates, lambda r: r > rating)
            if harder:
                return self.rng.choice(harder)

        easier_or_same = self._rated(candidates, lambda r: r <= rating)
        if easier_or_same:
            return self.rng.choice(easier_or_same)

        # Only harder questions left after a wrong answer
        return self.rng.choice(candidates)

    @staticmethod
    def _rated(candidates: List[Question], accept) -> List[Question]:
        return [q for q in candidates if accept(q.grade_rating or 0)]
