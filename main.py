#!/usr/bin/env python3
"""
Program Report Engine - Main Entry Point

Usage:
    python main.py list                                    # List available reports
    python main.py report BAR1 records.json --year 2024   # Build a report workbook
    python main.py setup                                   # Validate configuration
"""
import os
import sys
import json
import argparse
import logging
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler('report_engine.log'),
    ]
)
logger = logging.getLogger(__name__)

def setup_environment():
    """Load environment variables from .env file if present."""
    env_file = PROJECT_ROOT / '.env'
    if env_file.exists():
        logger.info("Loading environment from .env file")
        with open(env_file) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#') and '=' in line:
                    key, value = line.split('=', 1)
                    os.environ.setdefault(key.strip(), value.strip())

def configure_log_level():
    """Apply the configured LOG_LEVEL (read after .env is loaded)."""
    from config.settings import get_config
    logging.getLogger().setLevel(get_config().log_level)

def _load_json(path: str):
    with open(path, encoding='utf-8') as f:
        return json.load(f)

def cmd_list(args):
    """List registered reports."""
    from report_engine.reports.registry import REPORTS

    print("\n" + "="*60)
    print("AVAILABLE REPORTS")
    print("="*60)
    for name, definition in REPORTS.items():
        needs_year = " (requires --year)" if definition.requires_year else ""
        print(f"  {name:<14} {definition.title}{needs_year}")

def cmd_report(args):
    """Build one report and write it to a workbook."""
    from report_engine.core.filters import ReportFilters
    from report_engine.core.records import RecordSet
    from report_engine.reports.engine import get_report_engine
    from report_engine.tools.excel_output import get_excel_generator

    records = RecordSet.from_dict(_load_json(args.records))
    code_table = _load_json(args.codes) if args.codes else None
    filters = ReportFilters(
        year=args.year,
        operating_unit=args.ou,
        fund_type=args.fund_type,
        tier=args.tier,
    )

    logger.info(f"Building {args.report} with filters {filters.to_dict()}")
    result = get_report_engine().run(
        args.report,
        records,
        filters=filters,
        code_table=code_table,
        cutoff_month=args.month,
    )

    output = get_excel_generator(args.output_dir).write(
        result.grid,
        args.file_name or result.file_name,
        sheet_name=result.report_name,
    )

    print("\n" + "="*60)
    print(f"{result.title.upper()} ({result.period_label})")
    print("="*60)
    print(f"  Rows:   {len(result.grid.body)}")
    print(f"  Merges: {len(result.grid.merges)}")
    print(f"  File:   {output.file_path}")
    if result.year_gated:
        print("  Note:   no year selected, monthly columns are zero")

    if result.issues:
        print("\n" + "-"*60)
        print(f"DATA QUALITY ({len(result.issues)} issues)")
        print("-"*60)
        for issue in result.issues[:args.max_issues]:
            print(f"  [{issue.severity.value}] {issue.message}")
        if len(result.issues) > args.max_issues:
            print(f"  ... {len(result.issues) - args.max_issues} more")

def cmd_setup(args):
    """Validate configuration and reference data."""
    from config.settings import get_config
    from report_engine.core.data_context import get_data_context

    print("\n" + "="*60)
    print("CONFIGURATION VALIDATION")
    print("="*60)

    try:
        config = get_config()
    except ValueError as e:
        print(f"   ❌ {e}")
        sys.exit(1)

    print(f"\n📁 Output directory: {config.export.output_dir}")
    print(f"📅 Default cutoff month: {config.period.default_cutoff_month}")
    print(f"📄 Page size: {config.export.page_size}")

    context = get_data_context()
    print(f"\n📖 Data dictionary: {context.yaml_path}")
    checks = [
        ("Components", context.components),
        ("Program Management packages", context.program_management_packages),
        ("Operating units", context.region_map),
    ]
    for name, value in checks:
        status = "✅" if value else "❌"
        print(f"   {status} {name}: {len(value)}")

    print("\n" + "="*60)
    print("To use another data dictionary, set: DATA_DICTIONARY_PATH=<path>")
    print("="*60)

def main():
    setup_environment()

    parser = argparse.ArgumentParser(
        description="Program Report Engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py list                                        List reports
  python main.py report BAR1 records.json --year 2024        Physical report for 2024
  python main.py report MONTHLY records.json --year 2024 --month 6
  python main.py report BP_FORMS records.json --codes uacs.json

Environment Variables:
  REPORT_OUTPUT_DIR     Workbook output directory (default: .outputs)
  REPORT_CUTOFF_MONTH   Default "as of" month (default: 12)
  DATA_DICTIONARY_PATH  Alternative data dictionary YAML
  LOG_LEVEL             Logging level (default: INFO)
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # List command
    list_parser = subparsers.add_parser('list', help='List available reports')
    list_parser.set_defaults(func=cmd_list)

    # Report command
    report_parser = subparsers.add_parser('report', help='Build a report workbook')
    report_parser.add_argument('report', help='Report name, e.g. BAR1')
    report_parser.add_argument('records', help='JSON file of record arrays keyed by kind')
    report_parser.add_argument('--codes', help='JSON object-code reference table')
    report_parser.add_argument('--year', default='All', help='Target year (default: All)')
    report_parser.add_argument('--ou', default='All', help='Operating unit (default: All)')
    report_parser.add_argument('--fund-type', dest='fund_type', default='All',
                               help='Fund type (default: All)')
    report_parser.add_argument('--tier', default='All', help='Tier (default: All)')
    report_parser.add_argument('--month', type=int, default=None,
                               help='Cutoff month 1-12 for "as of" reports')
    report_parser.add_argument('--output-dir', dest='output_dir', default=None,
                               help='Output directory (default: REPORT_OUTPUT_DIR)')
    report_parser.add_argument('--file-name', dest='file_name', default=None,
                               help='Workbook file name (default: {Report}_{Year}_{OU}.xlsx)')
    report_parser.add_argument('--max-issues', dest='max_issues', type=int, default=20,
                               help='Data-quality issues to print')
    report_parser.set_defaults(func=cmd_report)

    # Setup command
    setup_parser = subparsers.add_parser('setup', help='Validate setup')
    setup_parser.set_defaults(func=cmd_setup)

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    try:
        configure_log_level()
        args.func(args)
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Error: {e}", exc_info=True)
        sys.exit(1)

if __name__ == "__main__":
    main()
