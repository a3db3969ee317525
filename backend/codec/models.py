"""
Pydantic models for conversion configuration and results.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from config import (
    DEFAULT_DELIMITER,
    DEFAULT_INCLUDE_SCHEMA,
    DEFAULT_NESTED_SEPARATOR,
    DEFAULT_OUTPUT_FORMAT,
)


class OutputFormat(str, Enum):
    OBJECT = "object"
    ARRAY = "array"
    AUTO = "auto"


class EncodeMode(str, Enum):
    OBJECT = "object"
    ARRAY = "array"


class EncodeConfig(BaseModel):
    """Options for JSON -> TOON encoding."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    delimiter: str = Field(DEFAULT_DELIMITER, description="Delimiter character for TOON values")
    nested_separator: str = Field(
        DEFAULT_NESTED_SEPARATOR,
        alias="nestedSeparator",
        description="Separator for nested object paths",
    )
    include_schema: bool = Field(
        DEFAULT_INCLUDE_SCHEMA,
        alias="includeSchema",
        description="Whether to include the @schema header line",
    )

    @field_validator("delimiter", mode="before")
    @classmethod
    def default_delimiter(cls, v):
        """Empty delimiters fall back to the default."""
        return v or DEFAULT_DELIMITER

    @field_validator("nested_separator", mode="before")
    @classmethod
    def default_nested_separator(cls, v):
        return v or DEFAULT_NESTED_SEPARATOR


class DecodeConfig(BaseModel):
    """Options for TOON -> JSON decoding."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    delimiter: str = Field(DEFAULT_DELIMITER, description="Delimiter character used in TOON")
    nested_separator: str = Field(
        DEFAULT_NESTED_SEPARATOR,
        alias="nestedSeparator",
        description="Separator for nested object paths",
    )
    parse_numbers: bool = Field(
        True, alias="parseNumbers", description="Parse numeric strings as numbers"
    )
    parse_booleans: bool = Field(
        True, alias="parseBooleans", description="Parse true/false strings as booleans"
    )
    output_format: OutputFormat = Field(
        OutputFormat(DEFAULT_OUTPUT_FORMAT),
        alias="outputFormat",
        description="Shape of the decoded result",
    )
    strict_nesting: bool = Field(
        False,
        alias="strictNesting",
        description="Fail instead of overwriting a scalar that blocks a nested key path",
    )

    @field_validator("delimiter", mode="before")
    @classmethod
    def default_delimiter(cls, v):
        """Empty delimiters fall back to the default."""
        return v or DEFAULT_DELIMITER

    @field_validator("nested_separator", mode="before")
    @classmethod
    def default_nested_separator(cls, v):
        return v or DEFAULT_NESTED_SEPARATOR


class EncodeResult(BaseModel):
    """Output of a single JSON -> TOON conversion."""

    toon: str = Field(..., description="TOON-formatted text")
    original_json: Any = Field(..., description="The value that was encoded")
    token_savings_estimate: str = Field(
        ..., description="Approximate token reduction versus compact JSON"
    )


class EncodeItem(BaseModel):
    """One JSON value to encode, with its own options."""

    mode: EncodeMode = Field(EncodeMode.OBJECT, description="Convert an object or an array")
    json_input: Any = Field(
        ..., alias="jsonInput", description="JSON value, or a JSON string to parse"
    )
    options: EncodeConfig = Field(default_factory=EncodeConfig)

    model_config = ConfigDict(populate_by_name=True)


class DecodeItem(BaseModel):
    """One TOON document to decode, with its own options."""

    toon_input: str = Field(..., alias="toonInput", description="TOON text")
    options: DecodeConfig = Field(default_factory=DecodeConfig)

    model_config = ConfigDict(populate_by_name=True)


class EncodeRequestBody(BaseModel):
    """Request body for POST /json-to-toon."""

    items: list[EncodeItem] = Field(..., min_length=1, description="Values to encode")
    continue_on_fail: bool = Field(
        False, description="Record per-item errors instead of failing the batch"
    )
    exact_tokens: bool = Field(
        False, description="Count tokens with tiktoken instead of the length/4 estimate"
    )


class DecodeRequestBody(BaseModel):
    """Request body for POST /toon-to-json."""

    items: list[DecodeItem] = Field(..., min_length=1, description="TOON documents to decode")
    continue_on_fail: bool = Field(
        False, description="Record per-item errors instead of failing the batch"
    )
