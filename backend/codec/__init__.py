"""
TOON codec for toonbridge.
Converts JSON-compatible data to and from TOON (Token-Oriented Object Notation)
text for token-efficient LLM prompts.
"""

__version__ = "1.0.0"

from .exceptions import (
                         InputShapeError,
                         InvalidJsonError,
                         NestedKeyConflictError,
                         ToonConversionError,
                         ToonError,
)
from .models import DecodeConfig, EncodeConfig, EncodeMode, EncodeResult, OutputFormat
from .tokens import count_tokens, estimate_token_savings, estimate_tokens
from .toon import (
                   ToonDecoder,
                   ToonEncoder,
                   decode,
                   encode_array,
                   encode_object,
                   encode_with_savings,
                   json_to_toon,
                   to_json_compatible,
                   toon_to_json,
                   validate_toon,
)
