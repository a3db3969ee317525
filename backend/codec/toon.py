"""
TOON (Token-Oriented Object Notation) Encoder/Decoder.

TOON is a compact, delimiter-based format for embedding structured data in
LLM prompts with fewer tokens than JSON.

Format example:
    @schema|name|age|city
    John|30|Madrid
    Ana|25|"Lisbon|PT"

Compared to JSON:
    [{"name": "John", "age": 30, "city": "Madrid"}, {"name": "Ana", "age": 25, "city": "Lisbon|PT"}]

Object mode flattens nested objects into joined key paths (``user.name``).
Array mode takes its columns from the first element's top-level keys and does
not flatten; nested values in array rows are rendered inline.
"""

import json
import math
import re
from collections.abc import Callable
from decimal import Decimal
from typing import Any

from config import DEFAULT_DELIMITER, SCHEMA_PREFIX
from logger import get_logger

from .exceptions import InputShapeError, InvalidJsonError, NestedKeyConflictError, ToonError
from .models import DecodeConfig, EncodeConfig, EncodeMode, EncodeResult, OutputFormat
from .tokens import estimate_token_savings, estimate_tokens

logger = get_logger(__name__)

ARRAY_JOIN_SEPARATOR = ","

# Literals accepted by JavaScript's Number()
_INTEGER_RE = re.compile(r"[+-]?\d+", re.ASCII)
_DECIMAL_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)
_RADIX_RE = re.compile(r"0(?:[xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)")
_INFINITY = {"Infinity": math.inf, "+Infinity": math.inf, "-Infinity": -math.inf}


def parse_number(text: str) -> int | float | None:
    """
    Parse a string the way JavaScript's Number() does.

    Surrounding whitespace is ignored and a blank string is 0. Integer
    literals come back as int, everything else as float.

    Returns:
        The number, or None when the string is not numeric
    """
    s = text.strip()
    if not s:
        return 0
    if _INTEGER_RE.fullmatch(s):
        return int(s)
    if _DECIMAL_RE.fullmatch(s):
        return float(s)
    if _RADIX_RE.fullmatch(s):
        return int(s, 0)
    return _INFINITY.get(s)


def to_compact_json(value: Any) -> str:
    """Serialize without whitespace, matching JSON.stringify output."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def to_json_compatible(value: Any) -> Any:
    """Replace non-finite floats with None, as JSON.stringify writes them as null."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {k: to_json_compatible(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_json_compatible(v) for v in value]
    return value


def load_json(text: str) -> Any:
    """Parse a JSON string, raising InvalidJsonError on failure."""
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidJsonError(f"Invalid JSON input: {e}") from e


def _resolve_config(config, model):
    if config is None:
        return model()
    if isinstance(config, model):
        return config
    return model.model_validate(config)


class ToonEncoder:
    """
    Encoder for converting Python data structures to TOON format.
    """

    @staticmethod
    def stringify(v: Any) -> str:
        """
        Render a value as the text of a single TOON field.

        Args:
            v: Any JSON-compatible value

        Returns:
            Unescaped field text
        """
        if v is None:
            return ""
        if isinstance(v, bool):
            return "true" if v else "false"
        if isinstance(v, float):
            if math.isnan(v):
                return "NaN"
            if math.isinf(v):
                return "Infinity" if v > 0 else "-Infinity"
            if v.is_integer() and abs(v) < 1e21:
                return str(int(v))
            s = repr(v)
            if "e" not in s:
                return s
            # Exponent form only outside [1e-6, 1e21), written 1e-7 rather than 1e-07
            if 1e-6 <= abs(v) < 1e21:
                return format(Decimal(s), "f")
            mantissa, exponent = s.split("e")
            return f"{mantissa}e{int(exponent):+d}"
        if isinstance(v, str):
            return v
        if isinstance(v, (list, tuple)):
            return ARRAY_JOIN_SEPARATOR.join(map(ToonEncoder.stringify, v))
        if isinstance(v, dict):
            return to_compact_json(v)
        return str(v)

    @staticmethod
    def escape_value(value: str, delimiter: str) -> str:
        """Quote a field if it contains the delimiter or a newline."""
        if delimiter in value or "\n" in value:
            return '"' + value.replace('"', '""') + '"'
        return value

    @classmethod
    def flatten(cls, obj: dict, prefix: str = "", separator: str = ".") -> dict[str, Any]:
        """
        Flatten nested objects into a single level keyed by joined paths.

        Arrays are joined into one comma-separated string, not flattened.

        Args:
            obj: Object to flatten
            prefix: Path of the enclosing object ("" at the top level)
            separator: String placed between path segments

        Returns:
            Flat mapping in first-occurrence key order
        """
        result: dict[str, Any] = {}

        for key, value in obj.items():
            new_key = f"{prefix}{separator}{key}" if prefix else str(key)

            if isinstance(value, dict):
                result.update(cls.flatten(value, new_key, separator))
            elif isinstance(value, (list, tuple)):
                result[new_key] = cls.stringify(value)
            else:
                result[new_key] = value

        return result

    @staticmethod
    def _schema_line(keys: list[str], delimiter: str) -> str:
        return f"{SCHEMA_PREFIX}{delimiter}{delimiter.join(keys)}\n"

    @classmethod
    def _encode_row(cls, values, delimiter: str) -> str:
        return delimiter.join(cls.escape_value(cls.stringify(v), delimiter) for v in values)

    @classmethod
    def encode_object(cls, obj: dict, config: EncodeConfig) -> str:
        """
        Encode one object as a single TOON data line.

        Args:
            obj: Dictionary to encode; nested objects are flattened
            config: Resolved encoding options

        Returns:
            TOON-formatted string
        """
        if not isinstance(obj, dict):
            raise InputShapeError("an object", obj)

        flat = cls.flatten(obj, "", config.nested_separator)
        result = cls._schema_line(list(flat), config.delimiter) if config.include_schema else ""
        return result + cls._encode_row(flat.values(), config.delimiter)

    @classmethod
    def encode_array(cls, arr: list, config: EncodeConfig) -> str:
        """
        Encode a list of objects as one TOON data line per element.

        Columns come from the first element's top-level keys. Fields missing
        from later elements are left empty.

        Args:
            arr: List of dictionaries
            config: Resolved encoding options

        Returns:
            TOON-formatted string ("" for an empty list)
        """
        if not isinstance(arr, (list, tuple)):
            raise InputShapeError("an array", arr)
        if not arr:
            return ""

        for idx, item in enumerate(arr):
            if not isinstance(item, dict):
                raise InputShapeError("an object", item, f"array element {idx}")

        keys = list(arr[0].keys())
        result = cls._schema_line(keys, config.delimiter) if config.include_schema else ""

        rows = [cls._encode_row((item.get(k) for k in keys), config.delimiter) for item in arr]
        return (result + "\n".join(rows)).rstrip()


class ToonDecoder:
    """
    Decoder for converting TOON format to Python data structures.
    """

    @staticmethod
    def parse_delimited_line(line: str, delimiter: str) -> list[str]:
        """
        Split one data line into fields, honouring double-quoted fields.

        Inside quotes the delimiter is literal and "" is an escaped quote.
        """
        values: list[str] = []
        current: list[str] = []
        in_quotes = False
        i = 0
        step = len(delimiter)

        while i < len(line):
            ch = line[i]

            if ch == '"':
                if in_quotes and line[i + 1 : i + 2] == '"':
                    current.append('"')
                    i += 1
                else:
                    in_quotes = not in_quotes
            elif not in_quotes and delimiter and line.startswith(delimiter, i):
                values.append("".join(current))
                current = []
                i += step
                continue
            else:
                current.append(ch)
            i += 1

        values.append("".join(current))
        return values

    @staticmethod
    def split_lines(text: str, delimiter: str) -> list[str]:
        """
        Split on newlines that are not inside a quoted field.

        Only a quote that opens a field (at line start or right after the
        delimiter) starts a quoted section, so a stray quote in the middle
        of a field never joins rows.
        """
        lines: list[str] = []
        current: list[str] = []
        in_quotes = False
        field_start = True
        i = 0

        while i < len(text):
            ch = text[i]

            if in_quotes:
                if ch == '"':
                    if text[i + 1 : i + 2] == '"':
                        current.append('""')
                        i += 2
                        continue
                    in_quotes = False
                current.append(ch)
            elif ch == "\n":
                lines.append("".join(current))
                current = []
                field_start = True
            elif delimiter and text.startswith(delimiter, i):
                current.append(delimiter)
                field_start = True
                i += len(delimiter)
                continue
            else:
                if ch == '"' and field_start:
                    in_quotes = True
                current.append(ch)
                field_start = False
            i += 1

        lines.append("".join(current))
        return lines

    @staticmethod
    def coerce_value(raw: str, parse_numbers: bool, parse_booleans: bool) -> Any:
        """Convert a raw field to a number or boolean when enabled; numbers win."""
        if parse_numbers and raw != "":
            number = parse_number(raw)
            if number is not None:
                return number
        if parse_booleans:
            if raw == "true":
                return True
            if raw == "false":
                return False
        return raw

    @staticmethod
    def set_nested_value(
        obj: dict, path: str, value: Any, separator: str, strict: bool = False
    ) -> None:
        """
        Assign value at a separator-joined key path, creating objects on the way.

        A non-object value sitting on the path is replaced by an empty object
        (or rejected with NestedKeyConflictError when strict).
        """
        keys = path.split(separator)
        current = obj

        for key in keys[:-1]:
            if key not in current:
                current[key] = {}
            elif not isinstance(current[key], dict):
                if strict:
                    raise NestedKeyConflictError(
                        f"Cannot set '{path}': '{key}' already holds a non-object value"
                    )
                logger.warning(f"Overwriting non-object value at '{key}' while setting '{path}'")
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value

    @classmethod
    def decode(cls, text: str, config: DecodeConfig) -> dict | list:
        """
        Decode TOON format to Python data structure.

        Args:
            text: TOON-formatted string
            config: Resolved decoding options

        Returns:
            A record dict or a list of record dicts, shaped by output_format
        """
        if not isinstance(text, str):
            raise InputShapeError("a string", text, "TOON input")

        delimiter = config.delimiter
        text = text.strip()
        if not text:
            return {} if config.output_format == OutputFormat.OBJECT else []

        lines = cls.split_lines(text, delimiter)
        first_line = lines[0]

        if first_line.startswith(SCHEMA_PREFIX):
            keys = first_line.replace(SCHEMA_PREFIX + delimiter, "", 1).split(delimiter)
            data_lines = lines[1:]
        else:
            # No header: positional field names sized to the first row
            keys = [f"field{idx}" for idx in range(len(cls.parse_delimited_line(first_line, delimiter)))]
            data_lines = lines

        records: list[dict] = []
        for line in data_lines:
            if not line.strip():
                continue

            values = cls.parse_delimited_line(line, delimiter)
            record: dict[str, Any] = {}

            for i, key in enumerate(keys):
                raw = values[i] if i < len(values) else ""
                value = cls.coerce_value(raw, config.parse_numbers, config.parse_booleans)
                cls.set_nested_value(
                    record, key, value, config.nested_separator, config.strict_nesting
                )

            records.append(record)

        if config.output_format == OutputFormat.AUTO:
            return records[0] if len(records) == 1 else records
        if config.output_format == OutputFormat.OBJECT:
            return records[0] if records else {}
        return records


def encode_object(value: dict, config: EncodeConfig | dict | None = None) -> str:
    """
    Encode a single object (nested objects are flattened).

    Args:
        value: Dictionary to encode
        config: EncodeConfig, a dict of its fields, or None for defaults

    Returns:
        TOON-formatted string
    """
    return ToonEncoder.encode_object(value, _resolve_config(config, EncodeConfig))


def encode_array(value: list, config: EncodeConfig | dict | None = None) -> str:
    """
    Encode a list of objects in tabular form.

    Args:
        value: List of dictionaries
        config: EncodeConfig, a dict of its fields, or None for defaults

    Returns:
        TOON-formatted string
    """
    return ToonEncoder.encode_array(value, _resolve_config(config, EncodeConfig))


def decode(text: str, config: DecodeConfig | dict | None = None) -> dict | list:
    """
    Decode TOON text to a dict or a list of dicts.

    Args:
        text: TOON-formatted string
        config: DecodeConfig, a dict of its fields, or None for defaults

    Returns:
        Python data structure
    """
    return ToonDecoder.decode(text, _resolve_config(config, DecodeConfig))


def encode_with_savings(
    value: Any,
    mode: EncodeMode | str = EncodeMode.OBJECT,
    config: EncodeConfig | dict | None = None,
    counter: Callable[[str], int] = estimate_tokens,
) -> EncodeResult:
    """
    Encode a value and estimate the token reduction against compact JSON.

    Args:
        value: Object (mode "object") or list of objects (mode "array")
        mode: Which encoder to use
        config: Encoding options
        counter: Token counting function for the savings estimate

    Returns:
        EncodeResult with the TOON text, the input and the estimate
    """
    if EncodeMode(mode) == EncodeMode.ARRAY:
        toon = encode_array(value, config)
    else:
        toon = encode_object(value, config)

    logger.debug(f"Encoded {type(value).__name__} to {len(toon)} chars of TOON")
    return EncodeResult(
        toon=toon,
        original_json=value,
        token_savings_estimate=estimate_token_savings(to_compact_json(value), toon, counter),
    )


def json_to_toon(
    json_str: str,
    mode: EncodeMode | str = EncodeMode.OBJECT,
    config: EncodeConfig | dict | None = None,
) -> str:
    """
    Convert JSON string to TOON format.

    Args:
        json_str: JSON-formatted string
        mode: "object" or "array"
        config: Encoding options

    Returns:
        TOON-formatted string
    """
    data = load_json(json_str)
    if EncodeMode(mode) == EncodeMode.ARRAY:
        return encode_array(data, config)
    return encode_object(data, config)


def toon_to_json(
    toon_str: str, config: DecodeConfig | dict | None = None, indent: int | None = None
) -> str:
    """
    Convert TOON string to JSON string.

    Args:
        toon_str: TOON-formatted string
        config: Decoding options
        indent: JSON indentation level

    Returns:
        JSON-formatted string
    """
    data = decode(toon_str, config)
    return json.dumps(to_json_compatible(data), indent=indent, ensure_ascii=False, allow_nan=False)


def validate_toon(text: str, delimiter: str = DEFAULT_DELIMITER) -> bool:
    """
    Validate that every data row matches the schema header's field count.

    Documents without a schema header are always valid.

    Args:
        text: TOON formatted string
        delimiter: Delimiter used by the document

    Returns:
        True if valid, raises ToonError otherwise.
    """
    delimiter = delimiter or DEFAULT_DELIMITER
    text = text.strip()
    if not text:
        return True

    lines = ToonDecoder.split_lines(text, delimiter)
    if not lines[0].startswith(SCHEMA_PREFIX):
        return True

    expected_cols = len(lines[0].replace(SCHEMA_PREFIX + delimiter, "", 1).split(delimiter))

    for i, line in enumerate(lines[1:], start=2):
        if not line.strip():
            continue
        cols = len(ToonDecoder.parse_delimited_line(line, delimiter))
        if cols != expected_cols:
            raise ToonError(
                f"Row {i} has {cols} columns, expected {expected_cols}. Content: {line[:50]}"
            )

    return True
