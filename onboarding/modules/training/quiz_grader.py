from typing import List, Mapping, Optional
from pydantic import BaseModel

from onboarding.core.exceptions import ValidationError
from onboarding.core.models.course import QuizModule


class QuestionReview(BaseModel):
    """Per-question breakdown returned to the learner after grading."""
    question_index: int
    selected_index: Optional[int] = None
    correct_index: int
    is_correct: bool
    explanation: Optional[str] = None


class QuizGradeResult(BaseModel):
    score_percentage: float
    passed: bool
    correct_count: int
    total_questions: int
    review: List[QuestionReview]


class QuizGrader:
    """
    Scores a submission against the answer key of a quiz module.

    Unanswered questions count as wrong. Answers that point outside the quiz
    (unknown question index, unknown option index) are rejected as malformed.
    """

    @staticmethod
    def grade(answers: Mapping[int, int], quiz: QuizModule) -> QuizGradeResult:
        questions = quiz.questions
        if not questions:
            raise ValidationError(f"Quiz '{quiz.id}' has no questions and cannot be graded")

        for q_index, selected in answers.items():
            if not 0 <= q_index < len(questions):
                raise ValidationError(f"Answer given for unknown question index {q_index}")
            if not 0 <= selected < len(questions[q_index].options):
                raise ValidationError(
                    f"Selected option {selected} does not exist for question {q_index}"
                )

        review = []
        correct_count = 0
        for q_index, question in enumerate(questions):
            selected = answers.get(q_index)
            is_correct = selected == question.correct_index
            if is_correct:
                correct_count += 1
            review.append(QuestionReview(
                question_index=q_index,
                selected_index=selected,
                correct_index=question.correct_index,
                is_correct=is_correct,
                explanation=question.explanation,
            ))

        score = 100.0 * correct_count / len(questions)
        return QuizGradeResult(
            score_percentage=score,
            passed=score >= quiz.passing_score,
            correct_count=correct_count,
            total_questions=len(questions),
            review=review,
        )
