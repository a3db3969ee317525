class ToonError(Exception):
    """Base exception for TOON conversion errors."""
    pass


class InputShapeError(ToonError):
    """Input does not have the shape the requested conversion expects."""

    def __init__(self, expected: str, actual: object, context: str = "input"):
        self.expected = expected
        self.actual = type(actual).__name__ if actual is not None else "null"
        super().__init__(f"Expected {context} to be {expected}, got {self.actual}")


class InvalidJsonError(ToonError):
    """JSON input string could not be parsed."""
    pass


class NestedKeyConflictError(ToonError):
    """A nested key path runs through a value that is not an object."""
    pass


class ToonConversionError(ToonError):
    """Conversion of a single batch item failed."""

    def __init__(self, item_index: int, message: str):
        self.item_index = item_index
        super().__init__(f"Item {item_index}: {message}")
