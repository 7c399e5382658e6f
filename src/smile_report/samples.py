"""Bundled questionnaire intakes used by the sample runner and the test suite."""

from __future__ import annotations

from smile_report.models.domain import IntakeData, QuestionAnswer


def _intake(session_id: str, answers: dict[str, str | list[str]], metadata: dict | None = None) -> IntakeData:
    return IntakeData(
        session_id=session_id,
        answers=[QuestionAnswer(qid, value) for qid, value in answers.items()],
        metadata=metadata or {},
    )


def single_missing_front_tooth(session_id: str = "sample-001") -> IntakeData:
    """First-time patient, one missing front tooth, mild anxiety."""
    return _intake(
        session_id,
        {
            "Q1": "missing_teeth_long_term",
            "Q2": "5",
            "Q3": ["missing_damaged"],
            "Q4": ["no_never"],
            "Q5": "no_aesthetic_only",
            "Q6a": "one_missing",
            "Q6b": "front_aesthetic_zone",
            "Q6c": "intact",
            "Q6d": ["mostly_intact_enamel"],
            "Q7": "natural_subtle",
            "Q8": "very_important_natural",
            "Q9": "30_45",
            "Q10": "price_quality_flexible",
            "Q11": "maybe_need_info",
            "Q12": "6_months",
            "Q13": "no",
            "Q14": "no",
            "Q15": "good",
            "Q16a": "no_complete",
            "Q16b": "no",
            "Q17": "no",
            "Q18": "yes_mild",
        },
        {"patient_name": "John", "tooth_location": "upper front tooth"},
    )


def urgent_pain(session_id: str = "sample-002") -> IntakeData:
    """Active pain with several adjacent missing teeth and severe anxiety."""
    return _intake(
        session_id,
        {
            "Q1": "functional_issues",
            "Q2": "2",
            "Q2a": "chewing_missing",
            "Q3": ["loose_pain_chewing"],
            "Q4": ["no_never"],
            "Q5": "yes_pain",
            "Q6a": "2_4_adjacent",
            "Q6b": "side_chewing",
            "Q6c": "heavily_restored",
            "Q7": "functional_durable",
            "Q8": "best_price_quality_flexible",
            "Q9": "45_60",
            "Q10": "affordable_durable",
            "Q11": "yes_for_best_result",
            "Q12": "1_3_months",
            "Q13": "no",
            "Q14": "occasionally",
            "Q15": "basic",
            "Q16a": "no_complete",
            "Q17": "no",
            "Q18": "yes_severe",
        },
        {"patient_name": "Maria", "tooth_location": "lower back teeth"},
    )


def premium_aesthetic(session_id: str = "sample-003") -> IntakeData:
    """No missing teeth, aesthetic focus, premium budget."""
    return _intake(
        session_id,
        {
            "Q1": "beautiful_youthful",
            "Q2": "6",
            "Q3": ["discoloured_dull"],
            "Q4": ["yes_veneers_crowns"],
            "Q5": "no_aesthetic_only",
            "Q6a": "no_missing",
            "Q6d": ["large_fillings_old_restorations"],
            "Q7": "hollywood",
            "Q8": "hollywood_bright_white",
            "Q9": "45_60",
            "Q10": "premium_best_result",
            "Q11": "yes_for_best_result",
            "Q12": "6_months",
            "Q13": "no",
            "Q14": "no",
            "Q15": "good",
            "Q16a": "no_complete",
            "Q17": "no",
            "Q18": "no",
        },
        {"patient_name": "Robert"},
    )


def minimal(session_id: str = "sample-004") -> IntakeData:
    """Only the required questions answered."""
    return _intake(session_id, {"Q5": "no_aesthetic_only", "Q6a": "one_missing"})


SAMPLES = {
    "single_missing_front_tooth": single_missing_front_tooth,
    "urgent_pain": urgent_pain,
    "premium_aesthetic": premium_aesthetic,
    "minimal": minimal,
}
