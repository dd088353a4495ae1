#!/usr/bin/env python3
"""
Complete Pipeline Demo: Form -> Navigation -> Responses -> Report

Shows the full workflow:
1. Build and validate the example enrolment form
2. Analyze the form for authoring risks
3. Walk the form for a few answer sets
4. Run the example report over sample responses
"""

from formlogic.config import configure_logging
from formlogic.examples import (
    build_enrolment_form,
    build_sample_report,
    build_sample_responses,
)
from formlogic.navigator import Navigator, paginate
from formlogic.pipeline import InMemoryResponseRepository, projected_columns, run_report
from formlogic.schema import analyze_schema, validate
from formlogic.serialization import schema_to_yaml
from formlogic.values import Text, canonical


def main():
    configure_logging()

    print("=" * 80)
    print("COMPLETE PIPELINE DEMO: Form → Navigation → Report")
    print("=" * 80)

    # =========================================================================
    # STEP 1: Build Form
    # =========================================================================
    print("\n1. BUILDING FORM...")
    schema = build_enrolment_form()
    validate(schema)
    print(f"   ✓ Form: {schema.title} ({schema.id})")
    for page in paginate(schema):
        print(f"   ✓ Page '{page.title}': {[f.id for f in page.fields]}")

    # =========================================================================
    # STEP 2: Analyze Form
    # =========================================================================
    print("\n2. ANALYZING FORM...")
    report = analyze_schema(schema)
    print(f"   ✓ Fields: {report.total_fields}")
    print(f"   ✓ Sections: {report.total_sections}")
    print(f"   ✓ Rules: {report.total_rules}")
    print(f"   ✓ Backward jumps: {report.backward_jumps}")
    for warning in report.warnings:
        print(f"      - {warning}")

    # =========================================================================
    # STEP 3: Navigate
    # =========================================================================
    print("\n3. NAVIGATING...")
    nav = Navigator(schema)
    answer_sets = {
        "declines": {"consent": Text("no")},
        "no mentor": {"consent": Text("yes"), "mentoring": Text("no")},
        "full": {"consent": Text("yes"), "mentoring": Text("yes")},
    }
    for name, values in answer_sets.items():
        print(f"   {name:10} -> {' → '.join(nav.path(values))}")

    # =========================================================================
    # STEP 4: Run Report
    # =========================================================================
    print("\n4. RUNNING REPORT...")
    repository = InMemoryResponseRepository(build_sample_responses())
    sample_report = build_sample_report()
    results = run_report(sample_report, repository)

    for viz in sample_report.visualizations:
        columns = projected_columns(viz)
        print(f"\n   {viz.title} [{viz.chart_kind.value}]")
        print("   " + " | ".join(f"{c:>12}" for c in columns))
        print("   " + "-" * (15 * len(columns)))
        for row in results[viz.id]:
            print("   " + " | ".join(f"{canonical(row[c]):>12}" for c in columns))

    # =========================================================================
    # STEP 5: Serialized Form
    # =========================================================================
    print("\n5. SERIALIZED FORM (first lines):")
    print("-" * 80)
    lines = schema_to_yaml(schema).splitlines()
    for line in lines[:15]:
        print(f"   {line}")
    if len(lines) > 15:
        print(f"   ... ({len(lines) - 15} more lines)")

    print("\n" + "=" * 80)
    print("✓ DEMO COMPLETE")
    print("=" * 80)


if __name__ == "__main__":
    main()
