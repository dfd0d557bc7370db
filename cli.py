"""Command-line front end for the GPT formula.

Usage examples:
- Plain prompt:
  python cli.py gpt "Summarize the attached rows" --range @rows.json

- Agent mode with a toolkit and options:
  python cli.py gpt "What is 17% of 2,340?" --tools math --options "{\"temperature\": 0.2}"

- JSON output:
  python cli.py json "List three colors as {\"colors\": [...]}"

- Admin:
  python cli.py set-key            (prompts for the key)
  python cli.py clear-key
  python cli.py flush-cache

Notes:
- --range accepts a JSON array (1-D or 2-D) inline or as @path/to/file.json.
- Set GPTFORMULA_STORE_PATH so the stored key and cache version survive between runs.
"""
import argparse
import json
import sys
from pathlib import Path
from typing import Any

from src.gptformula.client import GPT_ERROR, AGENT_ERROR, GptFormula
from src.gptformula.normalize import GridRange
from src.gptformula.logging_util import get_logger

logger = get_logger(__name__)

def _load_json_arg(value: str) -> Any:
    if value.startswith("@"):
        p = Path(value[1:])
        return json.loads(p.read_text(encoding="utf-8"))
    return json.loads(value)

def _build_range(args) -> Any:
    if not args.range:
        return None
    values = _load_json_arg(args.range)
    if args.sheet:
        if values and not isinstance(values[0], list):
            values = [values]
        return GridRange(values=values, sheet_name=args.sheet)
    return values

def _is_error(text: str) -> bool:
    return text.startswith(GPT_ERROR) or text.startswith(AGENT_ERROR)

def main():
    ap = argparse.ArgumentParser()
    sub = ap.add_subparsers(dest="command", required=True)

    p_gpt = sub.add_parser("gpt", help="Run GPT(prompt, [range], [tools], [options])")
    p_gpt.add_argument("prompt")
    p_gpt.add_argument("--range", help="JSON array or @path/to/json")
    p_gpt.add_argument("--sheet", help="Sheet name attached to --range")
    p_gpt.add_argument("--tools", help="Toolkit name (enables agent mode)")
    p_gpt.add_argument("--options", help="Options as JSON text")

    p_json = sub.add_parser("json", help="Run GPT_JSON(prompt, [range])")
    p_json.add_argument("prompt")
    p_json.add_argument("--range", help="JSON array or @path/to/json")
    p_json.add_argument("--sheet", help="Sheet name attached to --range")

    p_key = sub.add_parser("set-key", help="Store the API key (prompts when omitted)")
    p_key.add_argument("key", nargs="?")

    sub.add_parser("clear-key", help="Remove the stored API key")
    sub.add_parser("flush-cache", help="Invalidate every cached response")

    args = ap.parse_args()
    formula = GptFormula()

    if args.command == "set-key":
        if args.key:
            formula.set_api_key(args.key)
        elif not formula.prompt_api_key():
            print("No key entered.")
            sys.exit(1)
        print("API key saved.")
        return

    if args.command == "clear-key":
        formula.clear_api_key()
        print("API key cleared.")
        return

    if args.command == "flush-cache":
        formula.flush_cache()
        print("Cache invalidated.")
        return

    try:
        range_input = _build_range(args)
    except Exception as e:
        logger.error("Failed to parse --range: %s", e)
        sys.exit(2)

    if args.command == "json":
        out = formula.gpt_json(args.prompt, range_input)
    else:
        out = formula.gpt(args.prompt, range_input, args.tools, args.options)

    print(out)
    if _is_error(out):
        sys.exit(1)

if __name__ == "__main__":
    main()
