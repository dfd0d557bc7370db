"""AWS Lambda entrypoint.

Design goals:
- Keep this file small and stable.
- Delegate all real logic to src/gptformula so the same codebase serves the
  CLI and the spreadsheet add-on calling this function over HTTP.

Expected event shapes:
1) API Gateway (body is a JSON string):
   {"body": "{\"function\":\"GPT\",\"args\":[\"Summarize\", [[\"a\", 1]]]}"}

2) Direct invoke / local test (event itself is the JSON dict):
   {"function": "GPT_JSON", "args": ["List 3 fruits", {"$range": {"values": [["x"]], "sheet": "Data"}}]}

   An argument of the form {"$range": {"values": [...], "sheet": "..."}} is a
   range carrying its sheet name; any other dict is an options payload.

Supported functions: GPT, GPT_JSON, FLUSH_CACHE.

Return:
- statusCode: always 200 (errors are formula results, not HTTP failures)
- body: JSON string of {"result": "<text>"}
"""
import json
from typing import Any, Dict, List

from src.gptformula.client import GPT_ERROR, GptFormula
from src.gptformula.normalize import GridRange
from src.gptformula.logging_util import get_logger

logger = get_logger(__name__)

_formula = GptFormula()

RANGE_MARKER = "$range"

def _safe_json_loads(s: Any):
    if isinstance(s, dict):
        return s
    if not isinstance(s, str):
        return {}
    s = s.strip()
    if not s:
        return {}
    try:
        return json.loads(s)
    except Exception:
        return {}

def _decode_arg(arg: Any) -> Any:
    if isinstance(arg, dict) and RANGE_MARKER in arg:
        payload = arg.get(RANGE_MARKER) or {}
        return GridRange(values=payload.get("values") or [], sheet_name=str(payload.get("sheet") or ""))
    return arg

def _dispatch(req: Dict[str, Any]) -> str:
    fn = str(req.get("function") or "GPT").strip().upper()
    args: List[Any] = req.get("args") or []
    if not isinstance(args, list):
        return f"{GPT_ERROR}: args must be a list"
    args = [_decode_arg(a) for a in args]

    if fn in ("GPT", "GPT_JSON") and not args:
        return f"{GPT_ERROR}: Missing prompt"

    if fn == "GPT":
        if len(args) > 4:
            return f"{GPT_ERROR}: GPT takes at most 4 arguments"
        return _formula.gpt(*args)
    if fn == "GPT_JSON":
        if len(args) > 2:
            return f"{GPT_ERROR}: GPT_JSON takes at most 2 arguments"
        return _formula.gpt_json(*args)
    if fn == "FLUSH_CACHE":
        _formula.flush_cache()
        return "Cache invalidated."
    return f"{GPT_ERROR}: Unknown function: {fn}"

def lambda_handler(event: Dict[str, Any], context: Any):
    try:
        body = event.get("body", event)
        req = _safe_json_loads(body)
        result = _dispatch(req)

    except Exception as e:
        logger.exception("lambda_handler fatal error: %s", e)
        result = f"{GPT_ERROR}: {e}"

    return {"statusCode": 200, "body": json.dumps({"result": result}, ensure_ascii=False)}
