"""Retirement forecast calculations.

Every function here is pure. Degenerate inputs (zero rates, empty
portfolios, retirement ages in the past) are not special-cased: they run
through IEEE float arithmetic and come out as NaN or +/-inf, and
``ForecastResult.anyInvalid`` is how callers find out.

Two growth models live side by side:

* ``years_to_retirement`` solves continuous compounding with a continuous
  contribution stream in closed form.
* ``investment_growth`` steps year by year and assumes contributions land
  mid-year on average (half of the contribution earns that year's return).

They give slightly different trajectories for the same inputs.
"""

from __future__ import annotations

import math
from typing import List, Sequence, Union

import numpy as np
from loguru import logger

from forecaster.models import (
    CoastPoint,
    ForecastResult,
    GrowthPoint,
    NormalizedParameters,
    PassiveIncomePoint,
)

# series never run past this age, whatever retirement age was entered
MAX_SERIES_AGE = 100


class SeriesSpanError(ValueError):
    """Raised when the entered ages would produce a longer series than allowed."""


def pct(percent: float) -> float:
    return percent / 100.0


def required_portfolio(annual_expenses: float, withdrawal_rate_pct: float) -> float:
    """Portfolio whose withdrawal at ``withdrawal_rate_pct`` covers ``annual_expenses``."""
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.float64(annual_expenses) / np.float64(pct(withdrawal_rate_pct)))


def years_to_retirement(
    current_portfolio: float,
    annual_contribution: float,
    required: float,
    return_rate_pct: float,
) -> float:
    """Years until the portfolio reaches ``required``.

    With ``r = ln(1 + rate)`` the balance under continuous compounding and a
    continuous contribution stream ``c`` is ``P(t) = (P0 + c/r) e^(rt) - c/r``,
    which inverts to ``t = ln((c + P*r) / (c + P0*r)) / r``. Already funded
    portfolios give a negative ``t``, which is reported as zero.
    """
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        r = np.log(np.float64(1.0 + pct(return_rate_pct)))
        contribution = np.float64(annual_contribution)
        numerator = contribution + np.float64(required) * r
        denominator = contribution + np.float64(current_portfolio) * r
        years = np.log(numerator / denominator) / r
    if years < 0:
        return 0.0
    return float(years)


def possible_retirement_age(current_age: Union[int, float], years: float) -> float:
    return float(np.ceil(np.float64(current_age) + np.float64(years)))


def investment_growth(
    from_age: Union[int, float],
    to_age: Union[int, float],
    initial_investment: float,
    annual_investment: float,
    real_return_pct: float,
) -> List[GrowthPoint]:
    """Year-end portfolio value for every age from ``from_age`` to ``to_age``.

    The first point is ``initial_investment`` at ``from_age``. Each following
    year earns ``real_return_pct`` on the opening balance plus half of that
    year's contribution, then adds the full contribution.
    An infinite age at either end leaves only the starting point.
    """
    total = np.float64(initial_investment)
    rate = pct(real_return_pct)
    growth = [GrowthPoint(age=from_age, value=float(total))]
    if math.isinf(from_age) or math.isinf(to_age):
        return growth
    with np.errstate(over="ignore", invalid="ignore"):
        for age in range(int(from_age) + 1, int(to_age) + 1):
            investment_return = (total + annual_investment / 2) * rate
            total = total + annual_investment + investment_return
            growth.append(GrowthPoint(age=age, value=float(total)))
    return growth


def years_to_coast(
    growth: Sequence[GrowthPoint],
    required: float,
    real_return_pct: float,
) -> List[CoastPoint]:
    """For each point, years of compounding without contributions to reach ``required``.

    Empty or negative portfolios produce inf/NaN rather than a clamped value.
    """
    coast = []
    with np.errstate(divide="ignore", invalid="ignore"):
        log_growth = np.log(np.float64(1.0 + pct(real_return_pct)))
        for point in growth:
            years = np.ceil(np.log(np.float64(required) / np.float64(point.value)) / log_growth)
            coast.append(CoastPoint(age=point.age, years=float(np.maximum(years, 0.0))))
    return coast


def passive_income(
    growth: Sequence[GrowthPoint],
    withdrawal_rate_pct: float,
) -> List[PassiveIncomePoint]:
    rate = pct(withdrawal_rate_pct)
    with np.errstate(invalid="ignore", over="ignore"):
        return [
            PassiveIncomePoint(age=point.age, income=float(np.float64(point.value) * rate))
            for point in growth
        ]


def series_span(inputs: NormalizedParameters) -> float:
    """Number of yearly steps ``derive_forecast`` will simulate."""
    return min(inputs.retirementAge, MAX_SERIES_AGE) - inputs.currentAge


def check_series_span(inputs: NormalizedParameters, max_years: int) -> None:
    span = series_span(inputs)
    # infinite spans collapse to a single point in investment_growth
    if math.isfinite(span) and span > max_years:
        raise SeriesSpanError(
            f"ages {inputs.currentAge} to {min(inputs.retirementAge, MAX_SERIES_AGE)} "
            f"span {span:g} years, more than the {max_years} allowed"
        )


def _is_invalid(value: float) -> bool:
    return not math.isfinite(value)


def derive_forecast(inputs: NormalizedParameters) -> ForecastResult:
    """Compute the whole forecast bundle from normalized inputs."""
    required = required_portfolio(inputs.annualExpenses, inputs.annualWithdrawalRate)
    years = years_to_retirement(
        inputs.currentPortfolio,
        inputs.annualContribution,
        required,
        inputs.annualReturnRate,
    )
    possible_age = possible_retirement_age(inputs.currentAge, years)
    age_difference = possible_age - inputs.retirementAge
    with np.errstate(divide="ignore", invalid="ignore"):
        percent_funded = float(np.float64(inputs.currentPortfolio) / np.float64(required) * 100.0)

    any_invalid = any(
        _is_invalid(value)
        for value in (required, years, possible_age, age_difference, percent_funded)
    )
    if any_invalid:
        logger.debug(
            f"Forecast has invalid values: required={required} years={years} "
            f"percent_funded={percent_funded}"
        )

    growth = investment_growth(
        inputs.currentAge,
        min(inputs.retirementAge, MAX_SERIES_AGE),
        inputs.currentPortfolio,
        inputs.annualContribution,
        inputs.annualReturnRate,
    )

    return ForecastResult(
        inputs=inputs,
        requiredPortfolio=required,
        yearsToRetirement=years,
        possibleRetirementAge=possible_age,
        isOnTrack=possible_age <= inputs.retirementAge,
        ageDifference=age_difference,
        percentFunded=percent_funded,
        anyInvalid=any_invalid,
        growthSeries=growth,
        coastSeries=years_to_coast(growth, required, inputs.annualReturnRate),
        passiveIncomeSeries=passive_income(growth, inputs.annualWithdrawalRate),
    )
