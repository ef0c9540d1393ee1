"""Split concatenated JSON object literals apart.

The telemetry exporter appends one pretty-printed JSON document per export
with no separator, so the log is not JSONL and cannot be parsed line by line.
"""


def split_json_objects(text: str) -> list[str]:
    """Return each balanced top-level ``{...}`` span of *text*, in order.

    Braces inside string literals are ignored. Text between spans and a
    trailing unterminated span are dropped. Never raises; whether a span is
    valid JSON is the caller's concern.
    """
    segments: list[str] = []
    depth = 0
    in_string = False
    escape_next = False
    start = -1

    for i, ch in enumerate(text):
        if in_string:
            if escape_next:
                escape_next = False
            elif ch == "\\":
                escape_next = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0 and start >= 0:
                chunk = text[start : i + 1].strip()
                if chunk:
                    segments.append(chunk)
                start = -1

    return segments
