# run_pipeline.py
# ==============================================================================
# Command-line pipeline: import a sales CSV, run AI analysis, then run one
# agent coordination session and print the report
# ==============================================================================

import argparse
import json
import os
import sys

from agent_roster import DISRUPTION_SCENARIOS, scenario_request
from csv_ingest import import_sales, parse_sales_csv
from data_layer import DataLayer
from errors import CsvValidationError, SupplyChainError
from insight_generator import generate_insights
from kpi_evaluator import KPIEvaluator
from llm_engine import LLMEngine
from logging_config import setup_logging
from orchestrator import CoordinationOrchestrator
from report import CoordinationReport
from voice_briefing import build_briefing


def run_pipeline(user_id, csv_path=None, analyze=True, scenario=None,
                 database_url=None, output=None):
    """Run the pipeline steps that were asked for.

    Args:
        user_id: owner of every row written
        csv_path: CSV to import first (skipped if None)
        analyze: regenerate AI insights
        scenario: DISRUPTION_SCENARIOS key to coordinate on (skipped if None)
        database_url: overrides DATABASE_URL
        output: path for a JSON dump of the results
    """
    print("=" * 60)
    print("SUPPLY CHAIN PIPELINE")
    print(f"User: {user_id}")
    print("=" * 60)

    data_layer = DataLayer(database_url)
    results = {'user_id': user_id}

    # 1. Import
    if csv_path:
        with open(csv_path, 'rb') as f:
            parsed = parse_sales_csv(f, file_name=os.path.basename(csv_path))
        imported = import_sales(data_layer, user_id, parsed)
        print(f"\nImported {imported.inserted} rows from {csv_path} "
              f"in {imported.batches} batch(es)")
        results['upload'] = imported.upload

    # 2. KPIs
    kpi = KPIEvaluator(data_layer.get_sales(user_id), data_layer.get_insights(user_id))
    print("\nKPIs:")
    for key, value in kpi.calculate_kpis().items():
        print(f"  {key}: {value}")

    # 3. Analysis
    if analyze:
        count = generate_insights(data_layer, user_id)
        insights = data_layer.get_insights(user_id)
        print(f"\nAI Insights ({count}):")
        for i in insights:
            print(f"  [{i['status']:>8}] {i['product_name']}: {i['recommendation']}")
        print(f"\nBriefing: {build_briefing(insights)}")
        results['insights'] = insights

    # 4. Coordination
    if scenario:
        trigger_type, disruption = scenario_request(scenario)
        orchestrator = CoordinationOrchestrator(data_layer)
        outcome = orchestrator.run(user_id, trigger_type=trigger_type, disruption=disruption)
        report = CoordinationReport(outcome['report'], outcome['messages'], outcome['agents'])
        print("\n" + "=" * 60)
        print(f"AGENT COORDINATION ({DISRUPTION_SCENARIOS[scenario]['label']})")
        print("=" * 60)
        for m in outcome['messages']:
            print(f"  {m['from']:>12} → {m['to']:<12} [{m['type']}] "
                  f"{(m.get('content') or {}).get('summary', '')}")
        print()
        print(report.explain())
        results['coordination'] = outcome

    llm_stats = LLMEngine.get_instance().get_stats()
    print(f"\nLLM Usage:")
    print(f"  Model: {llm_stats['model']}")
    print(f"  Total API Calls: {llm_stats['total_calls']}")
    print(f"  Total Tokens: {llm_stats['total_tokens']}")
    results['llm_stats'] = llm_stats

    if output:
        with open(output, 'w') as f:
            json.dump(results, f, indent=2, default=str)
        print(f"\nResults saved to {output}")

    return results


def main(argv=None):
    parser = argparse.ArgumentParser(description="Import, analyze and coordinate")
    parser.add_argument('--user', required=True, help="User id")
    parser.add_argument('--csv', help="Sales CSV to import first")
    parser.add_argument('--no-analyze', action='store_true', help="Skip AI analysis")
    parser.add_argument('--scenario', choices=sorted(DISRUPTION_SCENARIOS),
                        help="Run agent coordination for this scenario")
    parser.add_argument('--database-url', help="Overrides DATABASE_URL")
    parser.add_argument('--output', help="Write results JSON here")
    args = parser.parse_args(argv)

    setup_logging()
    try:
        run_pipeline(args.user, csv_path=args.csv, analyze=not args.no_analyze,
                     scenario=args.scenario, database_url=args.database_url,
                     output=args.output)
    except CsvValidationError as e:
        print("CSV rejected:", file=sys.stderr)
        for err in e.errors:
            print(f"  {err}", file=sys.stderr)
        return 1
    except SupplyChainError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
