"""Intake validation against the per-question answer schema."""

from __future__ import annotations

from smile_report.config.rules import QuestionDefinition, QuestionTable
from smile_report.exceptions import IntakeValidationError
from smile_report.models.domain import IntakeData, IntakeIssue, IntakeValidationResult, QuestionAnswer

INVALID_QUESTION_ID = "INVALID_QUESTION_ID"
INVALID_ANSWER_VALUE = "INVALID_ANSWER_VALUE"
MISSING_REQUIRED_QUESTION = "MISSING_REQUIRED_QUESTION"
TYPE_MISMATCH = "TYPE_MISMATCH"
CONDITIONAL_DEPENDENCY_NOT_MET = "CONDITIONAL_DEPENDENCY_NOT_MET"


class IntakeValidator:
    """Checks required-ness, shape, enumerated values and conditional applicability.

    ``validate`` never raises; ``validate_or_raise`` wraps the same result.
    """

    def __init__(self, questions: QuestionTable) -> None:
        self._questions = questions.questions

    def validate(self, intake: IntakeData) -> IntakeValidationResult:
        errors: list[IntakeIssue] = []
        warnings: list[IntakeIssue] = []
        answers = {a.question_id: a for a in intake.answers}

        for qid, q in self._questions.items():
            if not q.required:
                continue
            answer = answers.get(qid)
            if answer is None or answer.skipped:
                critical = " (critical L1)" if q.critical else ""
                errors.append(
                    IntakeIssue(
                        question_id=qid,
                        code=MISSING_REQUIRED_QUESTION,
                        message=f'Required{critical} question "{q.name}" not answered',
                    )
                )

        for answer in intake.answers:
            qid = answer.question_id
            q = self._questions.get(qid)
            if q is None:
                errors.append(
                    IntakeIssue(
                        question_id=qid,
                        code=INVALID_QUESTION_ID,
                        message=f'Unknown question ID "{qid}"',
                        received=qid,
                    )
                )
                continue
            if answer.skipped:
                continue

            if q.conditional_on is not None:
                parent = answers.get(q.conditional_on.question_id)
                parent_value = None if parent is None or parent.skipped else str(parent.answer)
                if parent_value not in q.conditional_on.values:
                    warnings.append(
                        IntakeIssue(
                            question_id=qid,
                            code=CONDITIONAL_DEPENDENCY_NOT_MET,
                            message=(
                                f"{qid} requires {q.conditional_on.question_id} to be one of "
                                f"[{', '.join(q.conditional_on.values)}], skipping"
                            ),
                            expected=list(q.conditional_on.values),
                            received=parent_value,
                        )
                    )
                    continue

            issue = self._check_answer(qid, q, answer)
            if issue is not None:
                errors.append(issue)

        return IntakeValidationResult(valid=not errors, errors=errors, warnings=warnings)

    def validate_or_raise(self, intake: IntakeData) -> IntakeData:
        result = self.validate(intake)
        if not result.valid:
            raise IntakeValidationError(result.errors, result.warnings)
        return intake

    def _check_answer(self, qid: str, q: QuestionDefinition, answer: QuestionAnswer) -> IntakeIssue | None:
        value = answer.answer
        if q.multi_select:
            if not isinstance(value, list):
                return IntakeIssue(
                    question_id=qid,
                    code=TYPE_MISMATCH,
                    message=f'Expected array for multi-select question "{q.name}", received {type(value).__name__}',
                    expected=["array"],
                    received=value,
                )
            invalid = [v for v in value if v not in q.values]
            if invalid or not value:
                return self._invalid_value(qid, q, value)
            return None

        if isinstance(value, list):
            return IntakeIssue(
                question_id=qid,
                code=TYPE_MISMATCH,
                message=f'Expected single value for question "{q.name}", received array',
                expected=["string or number"],
                received=value,
            )

        if q.is_numeric:
            try:
                number = int(str(value).strip())
            except ValueError:
                return self._invalid_value(qid, q, value)
            if not q.numeric_min <= number <= q.numeric_max:
                return self._invalid_value(qid, q, value)
            return None

        if value not in q.values:
            return self._invalid_value(qid, q, value)
        return None

    @staticmethod
    def _invalid_value(qid: str, q: QuestionDefinition, value) -> IntakeIssue:
        if q.is_numeric:
            expected = [str(n) for n in range(q.numeric_min, q.numeric_max + 1)]
        else:
            expected = list(q.values)
        return IntakeIssue(
            question_id=qid,
            code=INVALID_ANSWER_VALUE,
            message=f'Invalid value for "{q.name}"',
            expected=expected,
            received=value,
        )

    @staticmethod
    def format_result(result: IntakeValidationResult) -> str:
        """Render a validation result as a human-readable block of text."""
        lines: list[str] = []
        if result.valid:
            lines.append("Validation passed")
            if result.warnings:
                lines.append(f"  ({len(result.warnings)} warning(s))")
        else:
            lines.append("Input validation failed:")
            for error in result.errors:
                lines.append(f"  - {error.question_id}: {error.message}")
                if error.expected and len(error.expected) <= 10:
                    lines.append(f"    Expected: {', '.join(error.expected)}")
                elif error.expected:
                    lines.append(f"    Expected: one of {len(error.expected)} valid values")
                if error.received is not None:
                    lines.append(f"    Received: {error.received}")

        if result.warnings:
            lines.append("")
            lines.append("Warnings:")
            for warning in result.warnings:
                lines.append(f"  - {warning.question_id}: {warning.message}")
        return "\n".join(lines)
