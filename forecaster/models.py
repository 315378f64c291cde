from __future__ import annotations

from typing import List, Union

from pydantic import BaseModel, ConfigDict


class RawParameters(BaseModel):
    """Form inputs exactly as the user typed them.

    Rates are percentages, so ``annualReturnRate="4.00"`` means 4%.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    currentAge: str
    retirementAge: str
    currentPortfolio: str
    annualContribution: str
    annualExpenses: str
    annualReturnRate: str
    annualWithdrawalRate: str


DEFAULT_RAW_PARAMETERS = RawParameters(
    currentAge="21",
    retirementAge="65",
    currentPortfolio="0.00",
    annualContribution="12000.00",
    annualExpenses="30000.00",
    annualReturnRate="4.00",
    annualWithdrawalRate="3.50",
)

RAW_FIELDS = tuple(RawParameters.model_fields)


class NormalizedParameters(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    # +/-inf when the entered literal is too large for a float
    currentAge: Union[int, float]
    retirementAge: Union[int, float]
    currentPortfolio: float
    annualContribution: float
    annualExpenses: float
    # still percentages, see core.forecast.pct
    annualReturnRate: float
    annualWithdrawalRate: float


class GrowthPoint(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    age: Union[int, float]
    value: float


class CoastPoint(BaseModel):
    """Years of contribution-free compounding needed from ``age`` to reach the goal."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    age: Union[int, float]
    years: float


class PassiveIncomePoint(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    age: Union[int, float]
    income: float


class ForecastResult(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    inputs: NormalizedParameters
    requiredPortfolio: float
    yearsToRetirement: float
    # integral when finite; NaN/inf pass through untouched
    possibleRetirementAge: float
    isOnTrack: bool
    ageDifference: float
    percentFunded: float
    anyInvalid: bool
    growthSeries: List[GrowthPoint]
    coastSeries: List[CoastPoint]
    passiveIncomeSeries: List[PassiveIncomePoint]
