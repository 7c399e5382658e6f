"""Map validated answers to semantic tags via the configured rule table."""

from __future__ import annotations

import re

from smile_report.config.rules import QuestionTable, TagExtractionTable, TagQuestionRule
from smile_report.models.domain import ExtractedTag, IntakeData, QuestionAnswer, TagExtractionResult
from smile_report.observability.logger import get_logger

logger = get_logger("tag_extractor")

_WHITESPACE = re.compile(r"\s+")
_NON_ALNUM = re.compile(r"[^a-z0-9_]")


def normalize_answer(raw: object) -> str:
    text = str(raw).lower().strip()
    text = _WHITESPACE.sub("_", text)
    return _NON_ALNUM.sub("", text)


class TagExtractor:
    def __init__(self, tag_rules: TagExtractionTable, questions: QuestionTable) -> None:
        self._rules = tag_rules.questions
        self._questions = questions.questions

    def extract(self, intake: IntakeData) -> TagExtractionResult:
        answers: dict[str, QuestionAnswer] = {
            a.question_id: a for a in intake.answers if not a.skipped
        }
        tags: list[ExtractedTag] = []
        missing: list[str] = []

        for qid, rule in self._rules.items():
            answer = answers.get(qid)
            if answer is None:
                if self.is_required(qid):
                    missing.append(qid)
                continue
            if not self._conditional_met(qid, answers):
                logger.debug("conditional_question_skipped", session_id=intake.session_id, question=qid)
                continue

            if rule.type == "numeric_range":
                tags.extend(self._numeric_tags(qid, rule, answer))
            else:
                values = answer.answer if isinstance(answer.answer, list) else [answer.answer]
                for raw in values:
                    for tag in rule.mappings.get(normalize_answer(raw), []):
                        tags.append(ExtractedTag(tag=tag, source_question=qid, source_answer=str(raw)))

        logger.info(
            "tags_extracted",
            session_id=intake.session_id,
            tag_count=len(tags),
            missing_questions=missing,
        )
        return TagExtractionResult(session_id=intake.session_id, tags=tags, missing_questions=missing)

    def _conditional_met(self, qid: str, answers: dict[str, QuestionAnswer]) -> bool:
        question = self._questions.get(qid)
        if question is None or question.conditional_on is None:
            return True
        parent = answers.get(question.conditional_on.question_id)
        return parent is not None and str(parent.answer) in question.conditional_on.values

    @staticmethod
    def _numeric_tags(qid: str, rule: TagQuestionRule, answer: QuestionAnswer) -> list[ExtractedTag]:
        try:
            number = int(str(answer.answer).strip())
        except ValueError:
            return []
        for lo, hi, tags in rule.parsed_ranges():
            if lo <= number <= hi:
                return [
                    ExtractedTag(tag=tag, source_question=qid, source_answer=str(answer.answer))
                    for tag in tags
                ]
        return []

    def get_possible_tags(self, question_id: str) -> list[str]:
        rule = self._rules.get(question_id)
        if rule is None:
            return []
        groups = rule.ranges.values() if rule.type == "numeric_range" else rule.mappings.values()
        seen: dict[str, None] = {}
        for group in groups:
            for tag in group:
                seen.setdefault(tag)
        return list(seen)

    def is_required(self, question_id: str) -> bool:
        question = self._questions.get(question_id)
        return bool(question and question.required)

    def is_critical(self, question_id: str) -> bool:
        question = self._questions.get(question_id)
        return bool(question and question.critical)
