"""Run the bundled sample intakes through the report pipeline and print a summary.

Usage:
    python scripts/run_samples.py [--sample NAME] [--show-report] [--output PATH]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from smile_report.config.rules import load_rule_set
from smile_report.config.settings import Settings
from smile_report.content.file_store import FileContentStore
from smile_report.models.domain import PipelineResult
from smile_report.models.serialization import to_jsonable
from smile_report.observability.logger import setup_logging
from smile_report.pipeline.report_pipeline import ReportPipeline
from smile_report.samples import SAMPLES
from smile_report.tone.tone_selector import ToneSelector


def print_header(title: str) -> None:
    print(f"\n{'=' * 64}")
    print(f"  {title}")
    print(f"{'=' * 64}")


def print_result(name: str, result: PipelineResult, show_report: bool) -> None:
    match = result.audit.scenario_match
    print_header(name)
    print(f"  Outcome:     {result.outcome.value}")
    print(f"  Scenario:    {match.matched_scenario} ({match.confidence.value}, score {match.score:.1f})")
    if match.fallback_used:
        print(f"  Fallback:    {match.fallback_reason}")
    print(f"  Tone:        {result.audit.tone_selection.selected_tone}")
    for reason in result.reasons:
        print(f"  - {reason}")
    if result.error:
        print(f"  Error:       {result.error}")
    if result.report is None:
        return
    print(f"  Sections:    {[s.section_number for s in result.report.sections]}")
    print(f"  Suppressed:  {result.report.suppressed_sections}")
    print(f"  Words:       {result.report.total_word_count}")
    if show_report:
        for section in result.report.sections:
            print(f"\n## {section.section_number}. {section.section_name}\n")
            print(section.content)


async def main() -> None:
    parser = argparse.ArgumentParser(description="Run sample intakes through the report pipeline")
    parser.add_argument("--sample", choices=sorted(SAMPLES), help="Run a single sample")
    parser.add_argument("--show-report", action="store_true", help="Print the composed report text")
    parser.add_argument("--output", help="Write the audit records to this JSON file")
    args = parser.parse_args()

    settings = Settings(persist_audits=False, llm_evaluator_enabled=False)
    setup_logging("WARNING", json_output=False)
    rules = load_rule_set(settings.rules_dir)
    store = FileContentStore(
        settings.content_dir,
        fallback_chain=ToneSelector(rules.tones).get_fallback_chain,
        default_language=settings.default_language,
    )
    pipeline = ReportPipeline.from_rules(settings, rules, store)

    names = [args.sample] if args.sample else list(SAMPLES)
    audits = []
    for name in names:
        result = await pipeline.run(SAMPLES[name]())
        print_result(name, result, args.show_report)
        audits.append(to_jsonable(result.audit))

    if args.output:
        Path(args.output).write_text(json.dumps(audits, indent=2), encoding="utf-8")
        print(f"\nAudit records written to {args.output}")


if __name__ == "__main__":
    asyncio.run(main())
