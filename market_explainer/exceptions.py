"""Typed exceptions for rule parsing, catalog validation and resolution."""


class ExplainerError(Exception):
    """Base class for all market_explainer errors."""


class ParseError(ExplainerError):
    """Condition expression is empty or malformed."""

    def __init__(self, expression: str, reason: str) -> None:
        self.expression = expression
        self.reason = reason
        super().__init__(f"Cannot parse condition {expression!r}: {reason}")


class UnknownFieldReferenceError(ExplainerError):
    """Condition references a column that has no snapshot attribute."""

    def __init__(self, ref: str) -> None:
        self.ref = ref
        super().__init__(f"Unknown field reference: {ref}")


class MissingDataError(ExplainerError):
    """A referenced snapshot field is missing. Never escapes the evaluator."""

    def __init__(self, ref: str) -> None:
        self.ref = ref
        super().__init__(f"No value for {ref}")


class BranchNotFoundError(ExplainerError):
    """No branch in either mode produces the requested label."""

    def __init__(self, label: str, classifier: str) -> None:
        self.label = label
        self.classifier = classifier
        super().__init__(f"No {classifier} branch produces {label!r} in either mode")


class CatalogError(ExplainerError):
    """Static rule catalog failed validation."""

    def __init__(self, catalog: str, problems: list[str]) -> None:
        self.catalog = catalog
        self.problems = problems
        joined = "; ".join(problems)
        super().__init__(f"Catalog {catalog} is invalid: {joined}")
