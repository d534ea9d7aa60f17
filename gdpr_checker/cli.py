"""
gdpr-check command line tool
"""
import argparse
import json
import logging
import os
import sys

import requests

from gdpr_checker.client import (
    AnalysisFailedError,
    ClientError,
    ClientState,
    ComplianceClient,
    PollTimeoutError,
    UploadError,
)

DEFAULT_SERVER = os.environ.get("GDPR_CHECKER_URL", "http://localhost:5000/api")
DEFAULT_STATE = os.path.join(os.path.expanduser("~"), ".gdpr_check_state.json")


def build_parser():
    parser = argparse.ArgumentParser(prog="gdpr-check", description="Check a document for GDPR compliance")
    parser.add_argument("file", nargs="?", help="PDF, DOC, DOCX or TXT file to analyze")
    parser.add_argument("--server", default=DEFAULT_SERVER, help="API base URL (default: %(default)s)")
    parser.add_argument("--state", default=DEFAULT_STATE, help="where to persist progress between runs")
    parser.add_argument("--json", action="store_true", help="print the full report as JSON")
    parser.add_argument("--resume", action="store_true", help="print the last saved report without polling")
    parser.add_argument("--health", action="store_true", help="check the server health and exit")
    parser.add_argument("--models", action="store_true", help="list available models and exit")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def print_report(report, as_json=False, out=None):
    out = out or sys.stdout
    if as_json:
        out.write(json.dumps(report, indent=2) + "\n")
        return
    analysis = report.get("analysis") or {}
    out.write(f"Document: {report.get('documentName')}\n")
    out.write(f"Score: {analysis.get('overallScore')}/100 ({analysis.get('complianceLevel')})\n")
    if analysis.get("summary"):
        out.write(f"\n{analysis['summary']}\n")
    improvements = (report.get("improvements") or {}).get("prioritizedImprovements") or []
    if improvements:
        out.write("\nPrioritized improvements:\n")
        for item in improvements:
            out.write(f"  [{item.get('priority')}] {item.get('area')}: {item.get('description')}\n")


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    client = ComplianceClient(args.server)

    try:
        if args.health:
            print(json.dumps(client.check_health()))
            return 0
        if args.models:
            for model in client.list_models():
                print(model)
            return 0
    except requests.exceptions.RequestException as e:
        print(f"Server unavailable: {e}", file=sys.stderr)
        return 1

    if args.resume:
        state = ClientState.load(args.state)
        if state is None:
            print("No saved report to resume", file=sys.stderr)
            return 1
        print_report(state.report_data, as_json=args.json)
        return 0

    if not args.file:
        print("A file to analyze is required", file=sys.stderr)
        return 2

    state = ClientState()
    try:
        report = client.check_document(args.file, state=state, state_path=args.state)
    except UploadError as e:
        print(f"Upload failed ({e.kind}): {e.message}", file=sys.stderr)
        return 1
    except PollTimeoutError as e:
        print(f"Timed out: {e}", file=sys.stderr)
        return 3
    except AnalysisFailedError as e:
        print(f"Analysis failed: {e}", file=sys.stderr)
        return 1
    except ClientError as e:
        print(str(e), file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Cannot read {args.file}: {e}", file=sys.stderr)
        return 1

    print_report(report, as_json=args.json)
    return 0


if __name__ == "__main__":
    sys.exit(main())
