"""Turn raw form text into numbers without ever failing."""

from __future__ import annotations

import math
import re
from typing import Union

from forecaster.models import NormalizedParameters, RawParameters

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")
_INFINITY = re.compile(r"\s*([+-]?)Infinity")
_LEADING_DOLLAR = re.compile(r"^(\s*[+-]?)\$")


def parse_int(text: str) -> Union[int, float]:
    """Leading integer literal of ``text``, truncating anything after it.

    Blank or unparsable text is zero. Literals too large for a float come
    back as +/-inf instead of an int.
    """
    match = _INT_PREFIX.match(text or "0")
    if match is None:
        return 0
    value = float(match.group(1))
    if not math.isfinite(value):
        return value
    return int(value)


def parse_decimal(text: str) -> float:
    """Leading decimal literal of ``text``; blank or unparsable text is zero.

    A ``$`` right before the number (after an optional sign) and thousands
    separators are ignored so pasted money amounts such as ``"$12,000.50"``
    parse as expected.
    """
    cleaned = _LEADING_DOLLAR.sub(r"\1", text or "0.00").replace(",", "")
    infinity = _INFINITY.match(cleaned)
    if infinity is not None:
        return float(f"{infinity.group(1)}inf")
    match = _FLOAT_PREFIX.match(cleaned)
    if match is None:
        return 0.0
    return float(match.group(1))


def normalize(raw: RawParameters) -> NormalizedParameters:
    return NormalizedParameters(
        currentAge=parse_int(raw.currentAge),
        retirementAge=parse_int(raw.retirementAge),
        currentPortfolio=parse_decimal(raw.currentPortfolio),
        annualContribution=parse_decimal(raw.annualContribution),
        annualExpenses=parse_decimal(raw.annualExpenses),
        annualReturnRate=parse_decimal(raw.annualReturnRate),
        annualWithdrawalRate=parse_decimal(raw.annualWithdrawalRate),
    )
