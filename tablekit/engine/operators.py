# tablekit/engine/operators.py
# Static registry of filter variants, operators and their labels

from __future__ import annotations

from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Union


class FilterVariant(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    RANGE = "range"
    DATE = "date"
    DATE_RANGE = "dateRange"
    BOOLEAN = "boolean"
    SELECT = "select"
    MULTI_SELECT = "multiSelect"


class FilterOperator(str, Enum):
    ILIKE = "iLike"
    NOT_ILIKE = "notILike"
    EQ = "eq"
    NE = "ne"
    IN_ARRAY = "inArray"
    NOT_IN_ARRAY = "notInArray"
    IS_EMPTY = "isEmpty"
    IS_NOT_EMPTY = "isNotEmpty"
    LT = "lt"
    GT = "gt"
    IS_BETWEEN = "isBetween"


class OperatorOption(NamedTuple):
    label: str
    operator: FilterOperator


TEXT_OPERATORS: List[OperatorOption] = [
    OperatorOption("Contains", FilterOperator.ILIKE),
    OperatorOption("Does not contain", FilterOperator.NOT_ILIKE),
    OperatorOption("Is", FilterOperator.EQ),
    OperatorOption("Is not", FilterOperator.NE),
    OperatorOption("Is empty", FilterOperator.IS_EMPTY),
    OperatorOption("Is not empty", FilterOperator.IS_NOT_EMPTY),
]

NUMERIC_OPERATORS: List[OperatorOption] = [
    OperatorOption("Is", FilterOperator.EQ),
    OperatorOption("Is not", FilterOperator.NE),
    OperatorOption("Is less than", FilterOperator.LT),
    OperatorOption("Is greater than", FilterOperator.GT),
    OperatorOption("Is between", FilterOperator.IS_BETWEEN),
    OperatorOption("Is empty", FilterOperator.IS_EMPTY),
    OperatorOption("Is not empty", FilterOperator.IS_NOT_EMPTY),
]

DATE_OPERATORS: List[OperatorOption] = [
    OperatorOption("Is", FilterOperator.EQ),
    OperatorOption("Is not", FilterOperator.NE),
    OperatorOption("Is before", FilterOperator.LT),
    OperatorOption("Is after", FilterOperator.GT),
    OperatorOption("Is between", FilterOperator.IS_BETWEEN),
    OperatorOption("Is empty", FilterOperator.IS_EMPTY),
    OperatorOption("Is not empty", FilterOperator.IS_NOT_EMPTY),
]

SELECT_OPERATORS: List[OperatorOption] = [
    OperatorOption("Is", FilterOperator.EQ),
    OperatorOption("Is not", FilterOperator.NE),
    OperatorOption("Is empty", FilterOperator.IS_EMPTY),
    OperatorOption("Is not empty", FilterOperator.IS_NOT_EMPTY),
]

MULTI_SELECT_OPERATORS: List[OperatorOption] = [
    OperatorOption("Has any of", FilterOperator.IN_ARRAY),
    OperatorOption("Has none of", FilterOperator.NOT_IN_ARRAY),
    OperatorOption("Is empty", FilterOperator.IS_EMPTY),
    OperatorOption("Is not empty", FilterOperator.IS_NOT_EMPTY),
]

BOOLEAN_OPERATORS: List[OperatorOption] = [
    OperatorOption("Is", FilterOperator.EQ),
    OperatorOption("Is not", FilterOperator.NE),
]

OPERATORS_BY_VARIANT: Dict[FilterVariant, List[OperatorOption]] = {
    FilterVariant.TEXT: TEXT_OPERATORS,
    FilterVariant.NUMBER: NUMERIC_OPERATORS,
    FilterVariant.RANGE: NUMERIC_OPERATORS,
    FilterVariant.DATE: DATE_OPERATORS,
    FilterVariant.DATE_RANGE: DATE_OPERATORS,
    FilterVariant.SELECT: SELECT_OPERATORS,
    FilterVariant.MULTI_SELECT: MULTI_SELECT_OPERATORS,
    FilterVariant.BOOLEAN: BOOLEAN_OPERATORS,
}

# Union lookup in declaration order; first label wins ("lt" -> "Is less than").
_GLOBAL_LABELS: Dict[str, str] = {}
for _options in (
    TEXT_OPERATORS,
    NUMERIC_OPERATORS,
    DATE_OPERATORS,
    SELECT_OPERATORS,
    MULTI_SELECT_OPERATORS,
    BOOLEAN_OPERATORS,
):
    for _option in _options:
        _GLOBAL_LABELS.setdefault(_option.operator.value, _option.label)


def _as_variant(variant: Union[FilterVariant, str, None]) -> Optional[FilterVariant]:
    if variant is None or isinstance(variant, FilterVariant):
        return variant
    try:
        return FilterVariant(variant)
    except ValueError:
        return None


def _token(operator: Union[FilterOperator, str]) -> str:
    return operator.value if isinstance(operator, FilterOperator) else str(operator)


def operators_for(variant: Union[FilterVariant, str]) -> List[OperatorOption]:
    """Ordered operator options legal for ``variant``; empty for unknown variants."""
    resolved = _as_variant(variant)
    if resolved is None:
        return []
    return list(OPERATORS_BY_VARIANT[resolved])


def default_operator(variant: Union[FilterVariant, str]) -> Optional[FilterOperator]:
    options = operators_for(variant)
    return options[0].operator if options else None


def is_operator_allowed(operator: Union[FilterOperator, str], variant: Union[FilterVariant, str]) -> bool:
    token = _token(operator)
    return any(option.operator.value == token for option in operators_for(variant))


def label_for(operator: Union[FilterOperator, str], variant: Union[FilterVariant, str, None] = None) -> str:
    """Display label for an operator.

    Looks in the variant's own list first (so date "lt" reads "Is before"),
    then in the union of all lists, and finally echoes the raw token.
    """
    token = _token(operator)
    resolved = _as_variant(variant)
    if resolved is not None:
        for option in OPERATORS_BY_VARIANT[resolved]:
            if option.operator.value == token:
                return option.label
    return _GLOBAL_LABELS.get(token, token)
