#!/usr/bin/env python3
"""
Command line interface for the nephrology calculators.

Usage:
    nephrocalc list [--category "Critical Care"]
    nephrocalc search sodium --limit 5
    nephrocalc info fena
    nephrocalc eval fena urineNa=20 plasmaCr=2.0 plasmaNa=140 urineCr=80
    nephrocalc eval ckd-epi-creatinine creatinine=88.4 age=45 sex=M --unit creatinine=si
    nephrocalc compare-egfr --creatinine 1.2 --age 72 --sex F
    nephrocalc validate [ID]
    nephrocalc convert 1.2 creatinine --from conventional --to si
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional, Sequence

from nephrocalc.config import Settings
from nephrocalc.errors import CalculatorError
from nephrocalc.evaluator import Evaluator, compare_egfr, parse_number
from nephrocalc.registry import REGISTRY
from nephrocalc.tools import CalcTools, format_calc_info
from nephrocalc import units, validation

logger = logging.getLogger(__name__)


def _pairs(items: Sequence[str], what: str) -> Dict[str, str]:
    """Parse ``key=value`` arguments."""
    out: Dict[str, str] = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise SystemExit(f"error: expected {what} as key=value, got {item!r}")
        out[key.strip()] = value.strip()
    return out


def _emit(payload: Any, as_json: bool, text: str) -> None:
    if as_json:
        print(json.dumps(payload, indent=2, default=str, ensure_ascii=False))
    else:
        print(text)


# ── Subcommands ──────────────────────────────────────────────────────────────

def cmd_list(args: argparse.Namespace, evaluator: Evaluator) -> int:
    if args.category:
        definitions = REGISTRY.get_by_category(args.category)
        if not definitions:
            print(f"Unknown category: {args.category}. "
                  f"Choose from {', '.join(REGISTRY.list_categories())}", file=sys.stderr)
            return 1
    else:
        definitions = list(REGISTRY)

    rows = [d.summary() for d in definitions]
    lines = []
    for category in REGISTRY.list_categories():
        members = [r for r in rows if r["category"] == category]
        if not members:
            continue
        lines.append(f"{category} ({len(members)})")
        lines.extend(f"  {r['id']:<28} {r['name']}" for r in members)
    _emit(rows, args.json, "\n".join(lines))
    return 0


def cmd_search(args: argparse.Namespace, evaluator: Evaluator) -> int:
    rows = [d.summary() for d in REGISTRY.search(args.query, args.limit)]
    text = "\n".join(f"{r['id']:<28} {r['name']}  [{r['category']}]" for r in rows)
    _emit(rows, args.json, text or f"No calculators match {args.query!r}")
    return 0


def cmd_info(args: argparse.Namespace, evaluator: Evaluator) -> int:
    info = CalcTools(REGISTRY, evaluator).calc_info(args.calc_id)
    _emit(info.model_dump(), args.json, format_calc_info(info))
    return 0


def cmd_eval(args: argparse.Namespace, evaluator: Evaluator) -> int:
    values = _pairs(args.values, "input")
    unit_flags = _pairs(args.unit or [], "--unit")
    tools = CalcTools(REGISTRY, evaluator)
    result = tools.execute_calc(args.calc_id, values, unit_flags)
    if not result.success:
        for message in result.error_messages():
            print(f"error: {message}", file=sys.stderr)
        if args.json:
            _emit(result.model_dump(), True, "")
        return 1

    out = result.outputs
    lines = [f"{out['label'] or args.calc_id}: {out['result']:g} {out['unit']}".rstrip(),
             f"Interpretation: {out['interpretation']}"]
    rec = out.get("recommendation")
    if rec:
        lines.append(f"Recommendation [{rec['urgency']}]: {rec['recommendation']}")
        lines.extend(f"  - {item}" for item in rec["action_items"])
    for warning in result.warnings:
        lines.append(f"warning: {warning['message']}")
    _emit(result.model_dump(), args.json, "\n".join(lines))
    return 0


def cmd_compare_egfr(args: argparse.Namespace, evaluator: Evaluator) -> int:
    rows = compare_egfr(args.creatinine, args.age, args.sex, race=args.race, unit=args.unit)
    lines = [f"{'Equation':<22} {'eGFR':>6}  Interpretation", "-" * 90]
    for row in rows:
        value = "n/a" if row["value"] is None else f"{row['value']:g}"
        lines.append(f"{row['equation']:<22} {value:>6}  {row['interpretation'] or row['note']}")
    _emit(rows, args.json, "\n".join(lines))
    return 0


def cmd_validate(args: argparse.Namespace, evaluator: Evaluator) -> int:
    if args.calc_id:
        REGISTRY.require(args.calc_id)
        results = validation.run_reference_suite(args.calc_id, evaluator)
        _emit([r.model_dump() for r in results], args.json,
              validation.format_suite_report(args.calc_id, results))
        return 0 if results and all(r.passed for r in results) else 1

    summary = validation.validate_all(evaluator)
    _emit(summary.model_dump(), args.json, validation.format_summary(summary))
    return 0 if summary.ok else 1


def cmd_convert(args: argparse.Namespace, evaluator: Evaluator) -> int:
    value = parse_number("value", args.value)
    converted = units.convert(value, args.analyte, args.from_unit, args.to_unit)
    src = units.resolve_unit(args.analyte, args.from_unit)
    dst = units.resolve_unit(args.analyte, args.to_unit)
    payload = {"analyte": args.analyte, "value": value, "from_unit": src,
               "to_unit": dst, "result": converted}
    _emit(payload, args.json, f"{value:g} {src} = {converted:.4g} {dst}")
    return 0


# ── Parser ───────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="nephrocalc", description="Nephrology clinical calculators")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of text")
    parser.add_argument("--lenient-units", action="store_true",
                        help="Pass values with unknown units through unchanged instead of failing")
    parser.add_argument("--no-bounds", action="store_true",
                        help="Skip the per-input min/max checks")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ...")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="List calculators")
    p.add_argument("--category", default=None)
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("search", help="Search calculators by name, description or category")
    p.add_argument("query")
    p.add_argument("--limit", type=int, default=None)
    p.set_defaults(func=cmd_search)

    p = sub.add_parser("info", help="Show a calculator's inputs")
    p.add_argument("calc_id")
    p.set_defaults(func=cmd_info)

    p = sub.add_parser("eval", help="Evaluate a calculator")
    p.add_argument("calc_id")
    p.add_argument("values", nargs="*", help="Inputs as field=value")
    p.add_argument("--unit", action="append", default=None,
                   help="Unit flag as field=si|conventional|<unit>; repeatable")
    p.set_defaults(func=cmd_eval)

    p = sub.add_parser("compare-egfr", help="Compare creatinine-based eGFR equations")
    p.add_argument("--creatinine", type=float, required=True)
    p.add_argument("--age", type=float, required=True)
    p.add_argument("--sex", choices=["M", "F"], required=True)
    p.add_argument("--race", default="Other")
    p.add_argument("--unit", default="conventional", help="conventional, si or a creatinine unit")
    p.set_defaults(func=cmd_compare_egfr)

    p = sub.add_parser("validate", help="Run the reference cases")
    p.add_argument("calc_id", nargs="?", default=None)
    p.set_defaults(func=cmd_validate)

    p = sub.add_parser("convert", help="Convert a value between units of an analyte")
    p.add_argument("value")
    p.add_argument("analyte")
    p.add_argument("--from", dest="from_unit", required=True)
    p.add_argument("--to", dest="to_unit", required=True)
    p.set_defaults(func=cmd_convert)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    overrides: Dict[str, Any] = {}
    if args.lenient_units:
        overrides["strict_units"] = False
    if args.no_bounds:
        overrides["enforce_bounds"] = False
    if args.log_level:
        overrides["log_level"] = args.log_level
    try:
        settings = Settings(**overrides)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")
    evaluator = Evaluator(REGISTRY, settings)

    try:
        return args.func(args, evaluator)
    except CalculatorError as e:
        logger.debug(f"{args.command} failed", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
