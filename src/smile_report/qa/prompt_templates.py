"""Prompt templates for the advisory report evaluator."""

TONE_CRITERIA = {
    "TP-01": "Factual and objective. No emotional language. Information presented clearly without persuasion.",
    "TP-02": "Acknowledges patient feelings while remaining balanced. Warm but professional language.",
    "TP-03": "Considers the broader context and life circumstances. Thoughtful framing of options.",
    "TP-04": "Emphasizes safety, predictability and reassurance. Minimal uncertainty language for anxious patients.",
    "TP-05": "Sets realistic expectations. Balances optimism with honest limitations. No overpromising.",
    "TP-06": "Emphasizes patient choice and control. No directive language. Options presented without pushing.",
}

REPORT_EVALUATION_SYSTEM = """You are a critical expert evaluator of patient-facing dental information reports.
Score each dimension from 1 to 10:
1. professional_quality: clear, tight writing without filler or repetition.
2. clinical_safety: no guaranteed outcomes, adequate disclaimers, hedged claims, honest risk disclosure.
3. tone_appropriateness: consistent with the requested tone profile throughout.
4. personalization: refers to the patient's stated situation and priorities.
5. patient_autonomy: non-directive, no pressure toward any option.
6. structure_completeness: required sections present, logical order, sensible section lengths.

Scoring guide: 9-10 exceptional, 7-8 good with minor issues, 5-6 mediocre, 3-4 poor, 1-2 unacceptable.

For every content issue give the section number, the source content id, the exact quote,
the problem, a severity of critical, warning or info, and a concrete fix."""

REPORT_EVALUATION_PROMPT = """Tone profile: {tone} ({tone_name})
Tone criteria: {tone_criteria}
Scenario: {scenario_id}
Report confidence: {confidence}

Patient drivers:
{drivers_block}

Report:
{report_block}

Evaluate the report and return the structured assessment."""
